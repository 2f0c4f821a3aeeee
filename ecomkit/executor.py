import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

from .models import RenderTask, TaskFailure

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3

RenderFn = Callable[[RenderTask], Awaitable[bytes]]
ProgressFn = Callable[[int, int], None]


@dataclass
class ExecutionOutcome:
    images: List[bytes]
    failures: List[TaskFailure] = field(default_factory=list)


class BatchExecutor:
    """
    Runs render tasks on a fixed pool of worker coroutines.

    Workers pull work from a shared cursor instead of a pre-split queue, so a
    slow render never leaves other workers idle. Each result lands in the slot
    of its task index, which keeps output order equal to task order no matter
    which render finishes first.
    """

    def __init__(self, render: RenderFn, concurrency_limit: int = DEFAULT_CONCURRENCY) -> None:
        _check_limit(concurrency_limit)
        self.render = render
        self.concurrency_limit = concurrency_limit

    async def execute(
        self,
        tasks: Sequence[RenderTask],
        concurrency_limit: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_progress: Optional[ProgressFn] = None,
    ) -> ExecutionOutcome:
        """
        Render every task with at most `concurrency_limit` calls in flight.

        A failed render leaves its slot empty and is recorded in `failures`;
        it is not retried here. If every task fails the outcome simply has
        no images. Setting `cancel_event` stops workers from claiming new
        tasks; renders already in flight still finish.
        """
        limit = self.concurrency_limit if concurrency_limit is None else concurrency_limit
        _check_limit(limit)

        total = len(tasks)
        slots: List[Optional[bytes]] = [None] * total
        failures: List[TaskFailure] = []
        cursor = 0
        settled = 0

        def claim() -> int:
            # No await between read and increment: on a single event loop no
            # two workers can ever get the same index.
            nonlocal cursor
            index = cursor
            cursor += 1
            return index

        async def worker(worker_id: int) -> None:
            nonlocal settled
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    logger.info("Worker %d stopping: batch cancelled", worker_id)
                    return
                index = claim()
                if index >= total:
                    return

                task = tasks[index]
                try:
                    slots[index] = await self.render(task)
                except Exception as exc:
                    reason = str(exc) or type(exc).__name__
                    logger.warning("Render task %d failed: %s", task.index, reason)
                    failures.append(TaskFailure(task.index, task.description, reason))

                settled += 1
                if on_progress is not None:
                    try:
                        on_progress(settled, total)
                    except Exception as exc:
                        logger.warning("Progress callback failed: %s", exc)

        workers = min(limit, total)
        logger.info("Executing %d render task(s) on %d worker(s)", total, workers)
        await asyncio.gather(*(worker(n) for n in range(workers)))

        images = [image for image in slots if image is not None]
        failures.sort(key=lambda f: f.index)
        logger.info("Batch finished: %d of %d task(s) produced an image", len(images), total)
        return ExecutionOutcome(images=images, failures=failures)


def _check_limit(limit: int) -> None:
    if not isinstance(limit, int) or limit < 1:
        raise ValueError(f"concurrency_limit must be an integer >= 1, got {limit!r}")
