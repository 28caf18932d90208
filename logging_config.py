from __future__ import annotations

import logging


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger with a console handler.

    Does nothing when the root logger already has handlers (uvicorn, pytest's
    capture, or a previous create_app call).
    """
    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)
