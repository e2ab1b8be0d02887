"""Process-wide logging setup for the Ziva service.

``configure_logging()`` runs once from ``server.create_app``. Later calls are
no-ops while the root logger already has handlers, so tests and embedding
applications keep their own setup.
"""

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: int | str = logging.INFO, log_file: str | None = None) -> None:
    """
    Console logging plus an optional file at ``log_file``.

    ``level`` applies to the root logger and to every handler added here.
    An empty ``log_file`` keeps output on the console only.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    if isinstance(level, str):
        level = level.upper()
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        folder = os.path.dirname(log_file)
        try:
            if folder:
                os.makedirs(folder, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        except OSError as e:
            # read-only deployments still get console output
            root.warning("Cannot open log file %s, logging to console only: %s", log_file, e)
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    root.setLevel(level)
