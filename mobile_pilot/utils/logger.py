import logging

from rich.console import Console
from rich.logging import RichHandler

SUCCESS_LEVEL = 25
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")

_console = Console(stderr=True)


class PilotLogger:
    """
    Thin wrapper around a stdlib logger.

    Adds a `success` level used by the agent nodes to mark the end of a step,
    and renders everything through a shared rich console handler.
    """

    def __init__(self, name: str, level: int = logging.INFO):
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)
        if not self._logger.handlers:
            handler = RichHandler(
                console=_console,
                show_path=False,
                rich_tracebacks=True,
                markup=False,
            )
            handler.setFormatter(logging.Formatter("%(name)s | %(message)s"))
            self._logger.addHandler(handler)
        self._logger.propagate = False

    @property
    def name(self) -> str:
        return self._logger.name

    def set_level(self, level: int) -> None:
        self._logger.setLevel(level)

    def debug(self, message: str, *args, **kwargs) -> None:
        self._logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs) -> None:
        self._logger.info(message, *args, **kwargs)

    def success(self, message: str, *args, **kwargs) -> None:
        self._logger.log(SUCCESS_LEVEL, f"✅ {message}", *args, **kwargs)

    def warning(self, message: str, *args, **kwargs) -> None:
        self._logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs) -> None:
        self._logger.error(message, *args, **kwargs)

    def critical(self, message: str, *args, **kwargs) -> None:
        self._logger.critical(message, *args, **kwargs)

    def header(self, message: str) -> None:
        self._logger.info("=" * 60)
        self._logger.info(message)
        self._logger.info("=" * 60)


_loggers: dict[str, PilotLogger] = {}


def get_logger(name: str) -> PilotLogger:
    if name not in _loggers:
        _loggers[name] = PilotLogger(name)
    return _loggers[name]


def set_global_level(level: int) -> None:
    for logger in _loggers.values():
        logger.set_level(level)
