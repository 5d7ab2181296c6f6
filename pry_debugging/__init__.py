"""
pry-debugging - stop a program at a line and poke at its variables
"""

import logging
import os
import sys

from .session import PryPdb
from .sources import ConsoleSource, ScriptedSource

logger = logging.getLogger(__name__)

SOURCES = ("console", "guide", "scripted")


def _env_flag(name, default="false"):
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


def make_source(kind):
    """Build the command source called *kind* (one of :data:`SOURCES`)."""
    if kind == "console":
        return ConsoleSource()
    if kind == "scripted":
        return ScriptedSource()
    if kind == "guide":
        from .guide import GuideSource

        return GuideSource()
    raise ValueError(f"unknown pry source {kind!r}, expected one of {', '.join(SOURCES)}")


def configure(source=None, disabled=None):
    """Reconfigure the shared :data:`pry` instance in place."""
    if source is not None:
        pry.source = make_source(source) if isinstance(source, str) else source
    if disabled is not None:
        pry.disabled = disabled
    return pry


def set_trace(frame=None):
    """Open a session in the caller's frame.

    Usable as ``PYTHONBREAKPOINT=pry_debugging.set_trace``.
    """
    pry.set_trace(frame or sys._getframe().f_back)


def _source_from_env():
    kind = os.environ.get("PRY_DEBUGGING_SOURCE", "console").strip().lower()
    try:
        return make_source(kind)
    except ValueError as exc:
        logger.warning("%s; using the console", exc)
        return ConsoleSource()


# Shared instance for ``pry_debugging.pry.set_trace()``
pry = PryPdb(_source_from_env(), disabled=_env_flag("PRY_DEBUGGING_DISABLED"))

__version__ = "1.0.0"
__all__ = ["pry", "set_trace", "configure", "make_source", "PryPdb", "ConsoleSource", "ScriptedSource"]
