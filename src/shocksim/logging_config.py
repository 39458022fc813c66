"""
Logging setup for the shocksim package.

Library modules only call ``logging.getLogger(__name__)``; handlers are
installed here, by the CLI or by an embedding application.
"""

import logging
from typing import Dict, Optional, Union


LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(level: Union[int, str]) -> int:
    """Numeric level for ``"debug"``, ``"INFO"``, ``logging.WARNING`` etc."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level {level!r}")
    return resolved


def configure_logging(
    level: Union[int, str] = logging.INFO,
    module_levels: Optional[Dict[str, Union[int, str]]] = None,
) -> logging.Logger:
    """
    Attach a stream handler to the ``shocksim`` logger.

    Calling this more than once changes levels but never adds a second
    handler.

    Parameters
    ----------
    level : int or str
        Package log level, e.g. ``"DEBUG"`` or ``logging.WARNING``.
    module_levels : dict, optional
        Per-module overrides, e.g. ``{"shocksim.simulation.context": "WARNING"}``.

    Returns
    -------
    logging.Logger
        The configured package logger.
    """
    package_logger = logging.getLogger("shocksim")
    package_logger.setLevel(resolve_level(level))

    if not any(getattr(h, "shocksim_handler", False) for h in package_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler.shocksim_handler = True
        package_logger.addHandler(handler)

    for name, module_level in (module_levels or {}).items():
        logging.getLogger(name).setLevel(resolve_level(module_level))

    return package_logger
