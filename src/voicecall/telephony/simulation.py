"""
Simulated call support.

Simulated calls keep no state: the status is derived from the time elapsed
since the creation timestamp embedded in the call id. The narrator only writes
log lines as a simulated call "progresses"; its tasks are cancelled on
shutdown and nothing waits on them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from voicecall.shared.logging import get_logger
from voicecall.telephony.interface import CallState

logger = get_logger(__name__)

# (seconds after placement, label) for log narration
Timeline = Sequence[tuple[float, str]]
# (upper bound in seconds, state); elapsed above the last bound is terminal
Thresholds = Sequence[tuple[float, CallState]]


def stage_for(elapsed_seconds: float, thresholds: Thresholds, terminal: CallState) -> CallState:
    """Map elapsed time onto an ordered list of stages.

    Bounds are inclusive, so a stage is left only once elapsed time is strictly
    past its bound.
    """
    for upper_bound, state in thresholds:
        if elapsed_seconds <= upper_bound:
            return state
    return terminal


class SimulationNarrator:
    """Fire-and-forget log narration for simulated calls."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def start(self, call_id: str, timeline: Timeline) -> asyncio.Task[None] | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop, skipping narration", extra={"call_id": call_id})
            return None

        task = loop.create_task(self._narrate(call_id, timeline))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _narrate(self, call_id: str, timeline: Timeline) -> None:
        elapsed = 0.0
        for at_seconds, label in timeline:
            await asyncio.sleep(max(0.0, at_seconds - elapsed))
            elapsed = at_seconds
            logger.info(
                "Simulated call progress",
                extra={"call_id": call_id, "stage": label},
            )

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
