# See LICENSE for details
"""
Resolver: single-hop source-map lookup for a file/line/column reference.

The referenced file must end with a '//# sourceMappingURL=<path>' line. The
map path is taken relative to the referenced file's directory and decoded with
the sourcemap library; the covering token gives the original source, which is
taken relative to the map's directory and canonicalized.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import sourcemap

logger = logging.getLogger(__name__)

LINK_HEADER = '//# sourceMappingURL='

PathLike = Union[str, Path]


class ResolveError(Exception):
    """Base class of all resolution failures."""

    pass


class ResolveIOError(ResolveError):
    """A generated file or map could not be read, or the source path does not exist."""

    pass


class MapDecodeError(ResolveError):
    """The map file is not a decodable source map."""

    pass


class MappingNotFound(ResolveError):
    """The referenced file has no trailing sourceMappingURL line."""

    pass


class TokenNotFound(ResolveError):
    """No mapping covers the requested position."""

    pass


class PathNotFound(ResolveError):
    """The covering mapping has no original source."""

    pass


@dataclass(frozen=True)
class ResolvedLocation:
    """
    Original location of a reference.

    Attributes:
        path: Canonical absolute path of the original source
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """

    path: str
    line: int
    column: int

    def __str__(self) -> str:
        return f'{self.path}:{self.line}:{self.column}'


def read_link(path: PathLike) -> Path:
    """
    Return the map location named by the trailing link line of a file.

    Args:
        path: Generated file to inspect

    Returns:
        Map path joined to the directory of path

    Raises:
        ResolveIOError: If the file cannot be read
        MappingNotFound: If the last line is missing or is not a link line
    """
    path = Path(path)
    try:
        src = path.read_text(encoding='utf-8', errors='replace')
    except OSError as e:
        raise ResolveIOError(f"cannot read '{path}': {e}") from e

    lines = src.splitlines()
    if not lines or not lines[-1].startswith(LINK_HEADER):
        raise MappingNotFound(f"'{path}' has no trailing {LINK_HEADER} line")

    return path.parent / lines[-1][len(LINK_HEADER) :].strip()


def load_map(map_path: Path):
    """
    Read and decode a source map.

    Raises:
        ResolveIOError: If the map cannot be read
        MapDecodeError: If the content is not a valid source map
    """
    try:
        text = map_path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise ResolveIOError(f"cannot read map '{map_path}': {e}") from e

    try:
        return sourcemap.loads(text)
    except (sourcemap.SourceMapDecodeError, ValueError, KeyError, TypeError, IndexError, AttributeError) as e:
        raise MapDecodeError(f"cannot decode map '{map_path}': {e}") from e


class Resolver:
    """
    Resolves references through one source-map hop.

    Calls are independent. With cache enabled the decoded map (or the load
    failure) of every referenced file is kept, since a log usually points at
    the same generated file many times.

    Usage:
        resolver = Resolver()
        loc = resolver.try_resolve('build/top.sv', 23, 1)
        if loc:
            print(loc.path, loc.line, loc.column)
    """

    def __init__(self, cache: bool = True):
        self.cache = cache
        self._maps: Dict[str, Union[Tuple[Path, Any], ResolveError]] = {}

    def clear_cache(self) -> None:
        """Drop every cached map."""
        self._maps.clear()

    def _map_for(self, path: PathLike) -> Tuple[Path, Any]:
        if not self.cache:
            map_path = read_link(path)
            return map_path, load_map(map_path)

        key = str(path)
        if key not in self._maps:
            try:
                map_path = read_link(path)
                self._maps[key] = (map_path, load_map(map_path))
            except ResolveError as e:
                self._maps[key] = e
        cached = self._maps[key]
        if isinstance(cached, ResolveError):
            raise cached
        return cached

    def resolve(self, path: PathLike, line: int, column: Optional[int] = None) -> ResolvedLocation:
        """
        Resolve a reference to its original location.

        Args:
            path: Referenced (generated) file
            line: Line number in path (1-indexed)
            column: Column number in path (1-indexed); 1 when None

        Returns:
            ResolvedLocation of the original source

        Raises:
            ResolveIOError: File, map or original source not accessible
            MapDecodeError: Malformed map
            MappingNotFound: No trailing link line
            TokenNotFound: No mapping covers the position
            PathNotFound: Covering mapping has no source
        """
        if line < 1:
            raise TokenNotFound(f'line must be >= 1, got {line}')
        if column is not None and column < 1:
            raise TokenNotFound(f'column must be >= 1, got {column}')

        map_path, index = self._map_for(path)

        # sourcemap is 0-indexed
        dst_line = line - 1
        dst_col = (column or 1) - 1
        try:
            token = index.lookup(dst_line, dst_col)
        except (IndexError, KeyError) as e:
            raise TokenNotFound(f'no mapping for {path}:{line}:{dst_col + 1} in {map_path}') from e
        if token is None:
            raise TokenNotFound(f'no mapping for {path}:{line}:{dst_col + 1} in {map_path}')

        if not token.src:
            raise PathNotFound(f'mapping for {path}:{line}:{dst_col + 1} has no source')

        try:
            src_path = (map_path.parent / token.src).resolve(strict=True)
        except (OSError, RuntimeError) as e:
            raise ResolveIOError(f"cannot canonicalize '{token.src}': {e}") from e

        return ResolvedLocation(path=str(src_path), line=token.src_line + 1, column=token.src_col + 1)

    def try_resolve(self, path: PathLike, line: int, column: Optional[int] = None) -> Optional[ResolvedLocation]:
        """
        Best-effort resolve: returns None instead of raising.

        The failure is logged at debug level and never propagated.
        """
        try:
            return self.resolve(path, line, column)
        except ResolveError as e:
            logger.debug('unresolved %s:%s: %s: %s', path, line, type(e).__name__, e)
            return None


def resolve(path: PathLike, line: int, column: Optional[int] = None) -> ResolvedLocation:
    """Resolve one reference without caching. See Resolver.resolve()."""
    return Resolver(cache=False).resolve(path, line, column)
