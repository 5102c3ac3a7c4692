"""Daemon worker threads that report through ``Future`` objects."""

from __future__ import annotations

from concurrent.futures import Future
import threading
from typing import Any, Callable


def spawn(func: Callable[..., Any], *args: Any, name: str, **kwargs: Any) -> Future:
    """Run ``func`` on a named daemon thread and return a future for its result.

    Interpreter exit never waits for the thread, so an abandoned lookup cannot
    keep the process alive.
    """
    future: Future = Future()

    def runner() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = func(*args, **kwargs)
        except BaseException as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)

    threading.Thread(target=runner, daemon=True, name=name).start()
    return future
