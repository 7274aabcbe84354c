import logging

from rich.console import Console
from rich.logging import RichHandler

_HANDLER_NAME = "patchvault-rich"


def configure_logging(level: str | int = "WARNING") -> None:
    """
    Routes `patchvault.*` log records to stderr through rich.

    Safe to call repeatedly; the handler is installed once and only the level changes.
    """
    logger = logging.getLogger("patchvault")
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    if any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        return

    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.propagate = False
