"""Reply pacing between staged assistant messages."""
import asyncio
import logging

logger = logging.getLogger(__name__)


class ReplyPacer:
    """
    Short pauses that make staged replies (menu → prompt → card) read
    naturally. Pauses are pure presentation: any delay, including zero,
    leaves the dialogue in the same state.

    ``skip()`` releases every pending pause immediately and makes later
    pauses no-ops until ``reset()``; sessions call it when they close.
    """

    def __init__(self, step_delay: float = 0.3, menu_delay: float = 0.8):
        self.step_delay = max(step_delay, 0.0)
        self.menu_delay = max(menu_delay, 0.0)
        self._skipped = asyncio.Event()

    async def pause_step(self) -> None:
        await self._pause(self.step_delay)

    async def pause_before_menu(self) -> None:
        await self._pause(self.menu_delay)

    def skip(self) -> None:
        self._skipped.set()

    def reset(self) -> None:
        self._skipped.clear()

    @property
    def skipped(self) -> bool:
        return self._skipped.is_set()

    async def _pause(self, delay: float) -> None:
        if delay <= 0 or self._skipped.is_set():
            return
        try:
            await asyncio.wait_for(self._skipped.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
