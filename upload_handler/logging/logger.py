import logging
import sys


class Log:
    """Upload handler logging facade.

    Keyword arguments are attached to the record as ``extra`` and appended to
    the line as ``key=value`` pairs, e.g. ``Log.info("stored", session="01")``.
    """

    _logger: logging.Logger = logging.getLogger("upload_handler")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Set the level and attach a stdout handler once per process."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
            )
            cls._logger.addHandler(handler)

    @staticmethod
    def _render(message: str, context: dict[str, object]) -> str:
        if not context:
            return message
        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{message} ({pairs})"

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        """Log an info message."""
        cls._logger.info(cls._render(message, kwargs), extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        """Log an error message."""
        cls._logger.error(cls._render(message, kwargs), extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        """Log a warning message."""
        cls._logger.warning(cls._render(message, kwargs), extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        """Log a debug message."""
        cls._logger.debug(cls._render(message, kwargs), extra=kwargs)

    @classmethod
    def exception(cls, message: str, **kwargs: object) -> None:
        """Log an error message with the active exception's traceback."""
        cls._logger.exception(cls._render(message, kwargs), extra=kwargs)
