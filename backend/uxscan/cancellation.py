"""
Cooperative cancellation for a single scan.

Every slow browser or Gemini call goes through CancelToken.race(): the call runs
as a task alongside a waiter on the token, and whichever finishes first decides
the outcome. If the token wins the call is cancelled and ScanAborted is raised.
"""

import asyncio

from uxscan.errors import ScanAborted


class CancelToken:
    def __init__(self):
        self._event = asyncio.Event()
        self.reason = ""

    def cancel(self, reason: str = "client disconnected"):
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise ScanAborted()

    async def wait(self):
        await self._event.wait()

    async def race(self, awaitable):
        """Await `awaitable` unless the token fires first.

        Returns the awaitable's result or re-raises its exception. Raises
        ScanAborted when the token fires first; the pending call is cancelled.
        """
        if self._event.is_set():
            # Never started, so close it to avoid "coroutine was never awaited"
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise ScanAborted()

        op = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({op, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            # Also covers the caller's own task being cancelled mid-wait
            for task in (op, waiter):
                if not task.done():
                    task.cancel()

        if op in done:
            return op.result()

        await asyncio.gather(op, return_exceptions=True)
        raise ScanAborted()

    async def sleep(self, seconds: float):
        """asyncio.sleep that ends early with ScanAborted."""
        await self.race(asyncio.sleep(seconds))


async def watch_disconnect(request, token: CancelToken, interval: float = 0.25):
    """Fire `token` once the HTTP client hangs up. Runs until cancelled."""
    while not token.cancelled:
        if await request.is_disconnected():
            print("[scan] Client disconnected, cancelling scan")
            token.cancel()
            return
        await asyncio.sleep(interval)
