"""
Power-state inhibition — block sleep/shutdown while the OS is updated.

``systemd-inhibit`` holds an inhibitor lock for as long as its child
process runs, so we start it around an infinite ``sleep`` and kill it
to release. The release function is idempotent and is also run from
signal handlers, so a SIGTERM during an update still drops the lock.
"""

from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger(__name__)

INHIBIT_MODES = (
    "shutdown",
    "sleep",
    "idle",
    "handle-power-key",
    "handle-suspend-key",
    "handle-hibernate-key",
    "handle-lid-switch",
)

_RELEASE_SIGNALS = tuple(
    getattr(signal, name)
    for name in ("SIGINT", "SIGTERM", "SIGUSR1", "SIGUSR2")
    if hasattr(signal, name)
)


def inhibit_command(why: str = "Update Operation") -> list[str]:
    """Build the systemd-inhibit argv."""
    return [
        "systemd-inhibit",
        f"--what={':'.join(INHIBIT_MODES)}",
        f"--who=node-os-updater pid {os.getpid()}",
        f"--why={why}",
        "--mode=block",
        "/bin/sleep",
        "infinity",
    ]


def acquire_inhibitor(why: str = "Update Operation") -> Callable[[], None]:
    """Start a power-state inhibitor and return its release function.

    If ``systemd-inhibit`` is not installed the update proceeds without
    inhibition and a no-op release is returned.

    Raises:
        OSError: The inhibitor process could not be started.
    """
    if shutil.which("systemd-inhibit") is None:
        logger.warning("systemd-inhibit not found; power states will not be inhibited")
        return lambda: None

    logger.info("Inhibiting power state changes via systemd")
    proc = subprocess.Popen(
        inhibit_command(why),
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )

    # Reentrant: a signal handler may call release() while it holds the lock
    lock = threading.RLock()
    released = False
    previous: dict[int, Any] = {}

    def release() -> None:
        nonlocal released
        with lock:
            if released:
                return
            released = True
        _restore_handlers(previous)
        if proc.poll() is None:
            logger.info("Releasing systemd inhibitor")
            proc.kill()
            proc.wait()
        logger.info("Released systemd inhibitor")

    def on_signal(signum: int, frame: Any) -> None:
        logger.warning("Received %s, releasing inhibitor", signal.Signals(signum).name)
        handler = previous.get(signum, signal.SIG_DFL)
        release()
        if callable(handler):
            handler(signum, frame)
        elif handler == signal.SIG_DFL:
            os.kill(os.getpid(), signum)

    for signum in _RELEASE_SIGNALS:
        try:
            previous[signum] = signal.signal(signum, on_signal)
        except ValueError:
            # Not the main thread; rely on the caller's finally block
            logger.debug("Cannot install handler for signal %d outside main thread", signum)

    return release


def _restore_handlers(previous: dict[int, Any]) -> None:
    for signum, handler in previous.items():
        try:
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        except ValueError:
            logger.debug("Cannot restore handler for signal %d outside main thread", signum)
    previous.clear()


@contextmanager
def inhibited(enabled: bool = True, why: str = "Update Operation") -> Iterator[None]:
    """Hold a power-state inhibitor for the duration of the block."""
    if not enabled:
        yield
        return

    release = acquire_inhibitor(why)
    try:
        yield
    finally:
        release()
