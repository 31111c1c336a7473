import abc

from typing import Any, Awaitable, Callable


class BaseAsyncExecutor(abc.ABC):
    @abc.abstractmethod
    def submit(self, fn: Callable, *args: Any, **kwargs: Any) -> Awaitable:
        """Schedules resolver call, returns awaitable of its result"""
        raise NotImplementedError
