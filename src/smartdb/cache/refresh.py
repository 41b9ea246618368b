"""Background refresh tasks for stale-while-revalidate reads.

Warm entity listings return cached data immediately and hand the network
refresh to a :class:`RefreshQueue`. The queue keeps a strong reference to
every in-flight task (the event loop only holds weak ones), reports failures
through :mod:`smartdb.output`, and lets callers wait for everything in
flight with :meth:`RefreshQueue.drain`.

Tasks are never cancelled by the queue. A failed refresh keeps its
exception on the task object, so code holding the task (for example
:attr:`~smartdb.entities.base.Entity.last_refresh`) can still inspect it.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Optional

from smartdb.output import get_output


class RefreshQueue:
    """Registry of fire-and-forget refresh tasks for one client session.

    Example::

        queue = RefreshQueue()
        task = queue.spawn(project.refresh_children())
        ...
        await queue.drain()  # every pending refresh has finished
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        """Number of refreshes that have not finished yet."""
        return len(self._tasks)

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        name: Optional[str] = None,
    ) -> asyncio.Task[Any]:
        """Schedule *coro* on the running loop without awaiting it.

        Must be called from inside a running event loop.
        """
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def drain(self) -> None:
        """Wait until every spawned refresh, including ones spawned meanwhile, is done.

        Failures are not raised here; they were already reported when the
        task finished.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            get_output().warning(f"Background refresh '{task.get_name()}' failed: {exc}")
