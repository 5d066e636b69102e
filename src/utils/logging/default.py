import logging

from src.utils.logging.base_logger import get_logger


class Logger:
    """
    Basic logger that carries a fixed context into every record.

    This class wraps a standard library logger and provides methods for the
    different logging levels while attaching context information (an editing
    session's flow file, an HTTP request id, ...) to the log `extra`.

    Args:
        name (str): The name of the logger instance
        context (dict, optional): Dictionary containing context information
    """

    def __init__(self, name: str, context: dict = None):
        self.base_logger: logging.Logger = get_logger(name)
        self.context = context

    def __add_context_to_extra(self, extra: dict) -> dict:
        """
        Merges the fixed context with additional extra information.

        Args:
            extra (dict): Additional context information to be added to the log

        Returns:
            dict: Merged dictionary of context and extra information
        """
        if not extra:
            return self.context

        if not self.context:
            return extra

        extra = extra.copy()
        extra.update(self.context)
        return extra

    def debug(self, message, extra=None):
        self.base_logger.debug(message, extra=self.__add_context_to_extra(extra))

    def info(self, message, extra=None):
        self.base_logger.info(message, extra=self.__add_context_to_extra(extra))

    def warning(self, message, extra=None):
        """
        Log a message with WARNING level.

        Args:
            message: The message to be logged
            extra (dict, optional): Additional context information for this log entry
        """
        self.base_logger.warning(message, extra=self.__add_context_to_extra(extra))

    def error(self, message, extra=None):
        """
        Log a message with ERROR level.

        Args:
            message: The message to be logged
            extra (dict, optional): Additional context information for this log entry
        """
        self.base_logger.error(message, extra=self.__add_context_to_extra(extra))
