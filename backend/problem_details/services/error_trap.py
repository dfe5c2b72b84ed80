"""
Scoped trap that promotes runtime warnings into exceptions.

``warnings.showwarning`` is a single process-wide slot, so a dispatcher is
installed there once and the active trap is looked up in a ContextVar.
Each thread and each asyncio task therefore sees only the trap installed by
its own request, and nested traps restore their predecessor on exit.

A warning only reaches the trap when the active warnings filter lets it
through; ignored warnings are never promoted. Promoted warnings are struck
from the once-per-location registries, so the next occurrence from the same
line is promoted again. Categories outside the trap's mask are passed on to
the previously installed ``showwarning``.
"""

import inspect
import logging
import threading
import warnings
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable, Iterator, Optional, Tuple, Type

from ..core.exceptions import TrappedWarningError

logger = logging.getLogger("problem_details.services.error_trap")

DEFAULT_CATEGORIES: Tuple[Type[Warning], ...] = (Warning,)

TrapHandler = Callable[[Warning, Type[Warning], str, int], None]

_active_trap: ContextVar[Optional[TrapHandler]] = ContextVar("problem_details_error_trap", default=None)
_install_lock = threading.Lock()


def create_trap_handler(categories: Tuple[Type[Warning], ...] = DEFAULT_CATEGORIES) -> TrapHandler:
    """Build a handler raising TrappedWarningError for warnings in ``categories``.

    Warnings outside the mask make the handler return, and the dispatcher
    hands them on unchanged.
    """

    def handler(message: Warning, category: Type[Warning], filename: str, lineno: int) -> None:
        if issubclass(category, categories):
            _forget_occurrence(message, category, lineno)
            raise TrappedWarningError(str(message), category, filename, lineno)

    return handler


def _forget_occurrence(message: Warning, category: Type[Warning], lineno: int) -> None:
    """Drop the registry entries that would suppress the next identical warning."""
    text = str(message)
    frame = inspect.currentframe()
    try:
        while frame is not None:
            registry = frame.f_globals.get("__warningregistry__")
            if registry:
                registry.pop((text, category, lineno), None)
                # "module" action
                registry.pop((text, category, 0), None)
            frame = frame.f_back
    finally:
        del frame
    warnings.onceregistry.pop((text, category), None)


def _make_dispatcher(previous: Callable) -> Callable:
    def dispatch(message, category, filename, lineno, file=None, line=None):
        handler = _active_trap.get()
        if handler is not None:
            handler(message, category, filename, lineno)
        previous(message, category, filename, lineno, file, line)

    dispatch._problem_details_dispatcher = True
    return dispatch


def _ensure_dispatcher() -> None:
    # warnings.catch_warnings() swaps showwarning back on exit, so the
    # dispatcher is re-checked on every trap entry.
    if getattr(warnings.showwarning, "_problem_details_dispatcher", False):
        return
    with _install_lock:
        if not getattr(warnings.showwarning, "_problem_details_dispatcher", False):
            warnings.showwarning = _make_dispatcher(warnings.showwarning)
            logger.debug("Installed warnings dispatcher")


def current_trap() -> Optional[TrapHandler]:
    return _active_trap.get()


@contextmanager
def error_trap(categories: Tuple[Type[Warning], ...] = DEFAULT_CATEGORIES) -> Iterator[TrapHandler]:
    """Promote warnings in ``categories`` to TrappedWarningError for the block."""
    _ensure_dispatcher()
    handler = create_trap_handler(categories)
    token = _active_trap.set(handler)
    try:
        yield handler
    finally:
        _active_trap.reset(token)
