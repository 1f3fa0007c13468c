"""
debug_trace.py

Debug tracing for the QC Chart application.

Enable with QCCHART_DEBUG_TRACE=1.  Optional environment knobs:
    QCCHART_DEBUG_LOG         log file path ("" for stderr only)
    QCCHART_TRACE_CATEGORIES  comma-separated categories to keep, e.g. "ENGINE,EXPORT"

Categories used across the app: MAIN, DOC, SELECT, ENGINE, SESSION,
POINTER, CANVAS, STORE, LIBRARY, PROJECTS, UPLOAD, EXPORT, ERROR, CRASH.
"""

import os
import sys
import traceback
from datetime import datetime
from functools import wraps

DEBUG_TRACE = os.environ.get("QCCHART_DEBUG_TRACE", "") == "1"

# Pointer moves arrive at display rate; only traced when asked for by name
TRACE_POINTER_MOVES = False

LOG_FILE = os.environ.get("QCCHART_DEBUG_LOG", "qcchart_debug.log")

_CATEGORIES = frozenset(
    c.strip().upper() for c in os.environ.get("QCCHART_TRACE_CATEGORIES", "").split(",") if c.strip()
)

_log_file = None


def _get_log_file():
    global _log_file
    if LOG_FILE and _log_file is None:
        try:
            _log_file = open(LOG_FILE, "w", encoding="utf-8")
        except OSError:
            pass
    return _log_file


def _wanted(category: str) -> bool:
    if _CATEGORIES:
        # Errors are always kept
        return category in _CATEGORIES or category in ("ERROR", "CRASH")
    return category != "POINTER" or TRACE_POINTER_MOVES


def trace(msg: str, category: str = "INFO"):
    """Write a timestamped trace line to stderr and the log file."""
    if not DEBUG_TRACE or not _wanted(category):
        return

    stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    line = f"[{stamp}] [{category}] {msg}"
    print(line, file=sys.stderr, flush=True)

    log_file = _get_log_file()
    if log_file:
        try:
            log_file.write(line + "\n")
            log_file.flush()
        except OSError:
            pass


def trace_exception(msg: str = "Exception"):
    """Trace ``msg`` with the traceback of the exception being handled."""
    if not DEBUG_TRACE:
        return
    trace(f"{msg}: {traceback.format_exc()}", "ERROR")


def trace_call(category: str = "CALL"):
    """Decorator tracing entry, exit and failure of a function."""
    def decorator(func):
        if not DEBUG_TRACE:
            return func

        @wraps(func)
        def wrapper(*args, **kwargs):
            name = func.__qualname__
            trace(f">>> {name}", category)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                trace(f"!!! {name} raised {type(e).__name__}: {e}", "ERROR")
                raise
            trace(f"<<< {name}", category)
            return result
        return wrapper
    return decorator


def close_log():
    """Close the log file."""
    global _log_file
    if _log_file:
        try:
            _log_file.close()
        except OSError:
            pass
        _log_file = None
