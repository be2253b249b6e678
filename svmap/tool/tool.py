# See LICENSE for details

from abc import ABCMeta, abstractmethod


class Tool(metaclass=ABCMeta):
    """
    Base class for all svmap tools.

    This class provides common functionality and a standard interface
    for all svmap tools: error bookkeeping and a setup contract that
    has to succeed before the tool is used.
    """

    def __init__(self):
        """Initialize the base tool with default values."""
        self.error_message = ''
        self._is_ready = False

    def set_error(self, message: str) -> None:
        """
        Set an error message and mark the tool as not ready.

        Args:
            message: The error message to store
        """
        self.error_message = message
        self._is_ready = False

    def is_ready(self) -> bool:
        """
        Check if the tool is ready for use.

        Returns:
            True if the tool is set up and ready, False otherwise.
        """
        return self._is_ready

    def get_error(self) -> str:
        """
        Get the current error message.

        Returns:
            The error message string.
        """
        return self.error_message

    def check_ready(self) -> None:
        """
        Raise if setup() has not completed successfully.

        Raises:
            RuntimeError: If the tool is not ready
        """
        if not self._is_ready:
            reason = self.error_message or 'setup() was not called'
            raise RuntimeError(f'{type(self).__name__} is not ready: {reason}')

    @abstractmethod
    def setup(self, *args, **kwargs) -> bool:
        """
        Setup the tool with the given parameters.

        This method must be implemented by subclasses.

        Returns:
            True if setup was successful, False otherwise.
        """
        pass
