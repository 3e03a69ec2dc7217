"""
Logging setup for flatprop.
"""

import io
import logging
import sys
from pathlib import Path

debug_logging = io.StringIO()  # Global bucket for debug statements.
DEBUG_FORMAT = "%(asctime)s %(levelname)8s [%(threadName)12s %(module)12s.%(funcName)-12s:%(lineno)4d] %(message)s"
SCREEN_FORMAT = "%(asctime)s | %(message)s"


def setup_logging(name="flatprop", level="INFO", stream=None):
    level = str(level).upper()
    log = logging.getLogger(name)
    log.handlers = []

    # Everything goes to the in-memory bucket so a run can dump it next to its artifacts.
    handler_debug = logging.StreamHandler(debug_logging)
    handler_debug.setFormatter(logging.Formatter(DEBUG_FORMAT))
    handler_debug.setLevel("DEBUG")
    log.addHandler(handler_debug)

    # Screen output goes to stderr; stdout is reserved for results.
    handler_screen = logging.StreamHandler(stream or sys.stderr)
    handler_screen.setFormatter(logging.Formatter(DEBUG_FORMAT if level == "DEBUG" else SCREEN_FORMAT,
                                                  datefmt="%H:%M:%S"))
    handler_screen.setLevel(level)
    log.addHandler(handler_screen)

    log.setLevel("DEBUG")  # Handlers filter; the logger lets everything through.
    log.propagate = False

    return log


def dump_debug_log(path):
    """Write the accumulated debug bucket to ``path`` and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(debug_logging.getvalue())
    return str(path)


def reset_debug_log():
    """Empty the debug bucket so the next dump only holds what follows."""
    debug_logging.seek(0)
    debug_logging.truncate()
