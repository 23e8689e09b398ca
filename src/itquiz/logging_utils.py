from __future__ import annotations

from rich.console import Console

__all__ = ["console", "debug_log", "err_console", "is_debug_logging", "set_debug_logging"]

console = Console()
err_console = Console(stderr=True)

_DEBUG_LOG = False


def set_debug_logging(enabled: bool) -> None:
    global _DEBUG_LOG
    _DEBUG_LOG = enabled


def is_debug_logging() -> bool:
    return _DEBUG_LOG


def debug_log(message: str) -> None:
    if _DEBUG_LOG:
        err_console.print(f"[itquiz debug] {message}", markup=False, highlight=False)
