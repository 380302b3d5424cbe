"""
Rotating "Try: ..." suggestion shown under the chat input.
"""

# imports built-in modules
import asyncio
import inspect
from typing import Awaitable, Callable, List, Optional, Sequence, Union

# imports local modules
from askthemanual.config import config

SuggestionCallback = Callable[[str], Union[None, Awaitable[None]]]


class SuggestionRotator:
    """Cycle through example questions on a fixed interval.

    The first suggestion is available as soon as the list is set; the
    timer only runs between :meth:`start` and :meth:`stop`.
    """

    def __init__(
        self,
        suggestions: Sequence[str] = (),
        interval: Optional[float] = None,
        on_change: Optional[SuggestionCallback] = None,
    ):
        self.interval = config.SUGGESTION_INTERVAL_SECONDS if interval is None else interval
        self.on_change = on_change
        self._suggestions: List[str] = list(suggestions)
        self._index = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def current(self) -> Optional[str]:
        if not self._suggestions:
            return None
        return self._suggestions[self._index]

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def advance(self) -> Optional[str]:
        """Move to the next suggestion, wrapping around."""
        if not self._suggestions:
            return None
        self._index = (self._index + 1) % len(self._suggestions)
        return self.current

    def reset(self, suggestions: Sequence[str]) -> None:
        """Replace the list and restart from the first entry.

        A running timer is rebound to the new list; an empty list stops it.
        """
        was_running = self.running
        self.stop()
        self._suggestions = list(suggestions)
        self._index = 0
        if was_running:
            self.start()

    def start(self) -> None:
        if self.running or not self._suggestions:
            return
        self._task = asyncio.get_running_loop().create_task(self._rotate())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _notify(self) -> None:
        if self.on_change is None or self.current is None:
            return
        result = self.on_change(self.current)
        if inspect.isawaitable(result):
            await result

    async def _rotate(self) -> None:
        await self._notify()
        while True:
            await asyncio.sleep(self.interval)
            self.advance()
            await self._notify()
