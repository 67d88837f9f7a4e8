from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    package_logger = logging.getLogger("timetabler")
    package_logger.setLevel(level)
    if any(getattr(handler, "_timetabler", False) for handler in package_logger.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._timetabler = True  # type: ignore[attr-defined]
    package_logger.addHandler(handler)
