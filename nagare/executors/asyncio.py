import inspect

from asyncio import Task, get_running_loop
from typing import Any, Callable

from nagare.executors.base import BaseAsyncExecutor


class AsyncIOExecutor(BaseAsyncExecutor):
    """AsyncIOExecutor is an executor that uses asyncio event loop to run
    resolvers.

    By default it allows to run both synchronous and asynchronous resolvers.
    Every call is scheduled as a separate :py:class:`asyncio.Task`, so the
    engine is able to wait for it with a deadline and to cancel it.

    To deny synchronous resolvers set deny_sync to True.

    :param deny_sync: deny synchronous resolvers -
                      raise TypeError if a result is not awaitable
    """

    def __init__(self, deny_sync: bool = False) -> None:
        self.deny_sync = deny_sync

    async def _run(self, fn: Callable, *args: Any, **kwargs: Any) -> Any:
        result = fn(*args, **kwargs)
        if inspect.isawaitable(result):
            return await result
        elif self.deny_sync:
            raise TypeError(
                "{!r} returned non-awaitable object {!r}".format(fn, result)
            )
        else:
            return result

    def submit(self, fn: Callable, *args: Any, **kwargs: Any) -> Task:
        loop = get_running_loop()
        return loop.create_task(self._run(fn, *args, **kwargs))
