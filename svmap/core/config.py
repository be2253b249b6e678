# See LICENSE for details
"""
Configuration for the annotation pipeline.

Settings come from an optional YAML file (path given explicitly or through
the SVMAP_CONFIG environment variable) with per-key overrides on top, e.g.
from the command line:

    indicator: '^--'
    cache_maps: true
    mode: stream
    log_level: WARNING
"""

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

from ruamel.yaml import YAML

CONFIG_ENV = 'SVMAP_CONFIG'

MODES = ('stream', 'buffer')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ConfigError(Exception):
    """Invalid or unreadable configuration."""

    pass


@dataclass(frozen=True)
class AnnotateConfig:
    """
    Pipeline settings.

    Attributes:
        indicator: Token that starts every annotation line
        cache_maps: Keep decoded source maps per referenced file
        mode: 'stream' (line by line) or 'buffer' (whole input at once)
        log_level: Root logging level name
    """

    indicator: str = '^--'
    cache_maps: bool = True
    mode: str = 'stream'
    log_level: str = 'WARNING'

    def validate(self) -> 'AnnotateConfig':
        """
        Check every field.

        Returns:
            self, to allow chaining

        Raises:
            ConfigError: On the first invalid field
        """
        if not isinstance(self.indicator, str) or not self.indicator:
            raise ConfigError('indicator must be a non-empty string')
        if '\n' in self.indicator or '\r' in self.indicator:
            raise ConfigError('indicator must fit on one line')
        if not isinstance(self.cache_maps, bool):
            raise ConfigError(f'cache_maps must be true or false, got {self.cache_maps!r}')
        if self.mode not in MODES:
            raise ConfigError(f'mode must be one of {", ".join(MODES)}, got {self.mode!r}')
        if not isinstance(self.log_level, str) or self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f'log_level must be one of {", ".join(LOG_LEVELS)}, got {self.log_level!r}')
        return self


def read_config_file(path: str) -> Dict[str, Any]:
    """
    Read a YAML configuration file.

    Args:
        path: YAML file with a top-level mapping

    Returns:
        The mapping (empty for an empty file)

    Raises:
        ConfigError: If the file cannot be read or is not a mapping
    """
    try:
        yaml_obj = YAML(typ='safe')
        with open(path, 'r') as f:
            data = yaml_obj.load(f)
    except Exception as e:
        raise ConfigError(f"cannot load config '{path}': {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config '{path}' must contain a mapping, got {type(data).__name__}")
    return data


def load_config(path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> AnnotateConfig:
    """
    Build the effective configuration.

    Args:
        path: YAML file; defaults to $SVMAP_CONFIG when set
        overrides: Values that win over the file; None values are ignored

    Returns:
        A validated AnnotateConfig

    Raises:
        ConfigError: On unreadable files, unknown keys or invalid values
    """
    path = path or os.environ.get(CONFIG_ENV)
    data = read_config_file(path) if path else {}
    data.update({k: v for k, v in (overrides or {}).items() if v is not None})

    known = {f.name for f in fields(AnnotateConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f'unknown config keys: {", ".join(unknown)}')

    config = replace(AnnotateConfig(), **data)
    if isinstance(config.log_level, str):
        config = replace(config, log_level=config.log_level.upper())
    return config.validate()
