import logging
from typing import Optional, Union

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_configured = False


def setup_logging(level: Optional[Union[int, str]] = None) -> None:
    """Configure the root logger once per process.

    Services and scripts call this at startup; library modules only ever use
    ``logging.getLogger(__name__)``.
    """
    global _configured
    if level is None:
        from libs.config import get_setting

        level = get_setting("logging.level", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    if not _configured:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
        _configured = True
    root.setLevel(level)
