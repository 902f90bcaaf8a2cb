"""
Cooperative cancellation for the job pool.
"""

import asyncio
import logging
import signal
from contextlib import suppress
from typing import Optional

log = logging.getLogger(__name__)


class CancellationToken:
    """
    Set once to stop admitting new jobs. Jobs already running are never
    interrupted; they check the token only before they start.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()


class SigintGuard:
    """
    Installs a one-shot SIGINT handler on the running loop: the first Ctrl+C
    sets the token and removes the handler, so a second Ctrl+C falls through
    to the default KeyboardInterrupt.
    """

    def __init__(self, token: CancellationToken, console=None):
        self.token = token
        self.console = console
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _on_sigint(self) -> None:
        message = "Received SIGINT. Finishing in-flight jobs, cancelling the rest..."
        if self.console is not None:
            self.console.print(f"\n[yellow]⚠️  {message}[/yellow]")
        else:
            log.warning(message)
        self.token.cancel("interrupted")
        self._remove()

    def _remove(self) -> None:
        if self._loop is not None:
            with suppress(NotImplementedError, RuntimeError):
                self._loop.remove_signal_handler(signal.SIGINT)
            self._loop = None

    def __enter__(self) -> "SigintGuard":
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self._on_sigint)
            self._loop = loop
        except (NotImplementedError, RuntimeError):
            # Signal handlers are unavailable on this platform/loop.
            log.debug("SIGINT guard not installed; interrupts terminate immediately.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self._remove()
        return False
