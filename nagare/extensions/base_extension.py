from __future__ import annotations

import inspect

from types import TracebackType
from typing import (
    TYPE_CHECKING,
    AsyncIterator,
    Callable,
    Iterator,
    List,
    NamedTuple,
    Optional,
    Sequence,
    Type,
    Union,
)

if TYPE_CHECKING:
    from nagare.context import ExecutionContext


HookIterator = Union[AsyncIterator[None], Iterator[None]]
Hook = Callable[["Extension", "ExecutionContext"], HookIterator]


class Extension:
    """Base class for hooking into the execution lifecycle

    Hooks are called in this order:

    1. ``on_init`` - once, when the schema is created; a place to add graph
       transformers to ``execution_context.transformers``
    2. ``on_operation`` - around the whole operation
    3. ``on_parse`` - around reading of the query string
    4. ``on_execute`` - around execution; resolution context is already
       created when it starts
    5. ``on_operation`` - after the operation

    Every hook is a generator function, sync or async, which yields once:

    .. code-block:: python

        class Timing(Extension):
            def on_execute(self, execution_context):
                start = time.perf_counter()
                yield
                log.info('took %s', time.perf_counter() - start)

    Plain functions and coroutine functions are also accepted, they are
    called before the step.
    """

    def on_init(  # type: ignore[return]
        self, execution_context: ExecutionContext
    ) -> HookIterator:
        yield None

    def on_operation(  # type: ignore[return]
        self, execution_context: ExecutionContext
    ) -> HookIterator:
        """Before yield: ``query_src``, ``variables``, ``request`` and
        requested operation name are known. After yield: everything,
        including ``errors``."""
        yield None

    def on_parse(  # type: ignore[return]
        self, execution_context: ExecutionContext
    ) -> HookIterator:
        """Not called when the query was given as
        :py:class:`nagare.query.Node`. After yield ``operation`` and
        ``query`` are set."""
        yield None

    def on_execute(  # type: ignore[return]
        self, execution_context: ExecutionContext
    ) -> HookIterator:
        """Before yield ``context`` is set, after yield ``result`` and
        ``errors``."""
        yield None


class ExtensionsManager:
    """Per-dispatch extensions manager, calls extension hooks in the right
    order"""

    def __init__(
        self,
        execution_context: ExecutionContext,
        extensions: Sequence[Union[Type[Extension], Extension]],
    ):
        self.execution_context = execution_context
        self.extensions: List[Extension] = [
            ext if isinstance(ext, Extension) else ext()
            for ext in extensions or ()
        ]

    def _hooks(self, name: str) -> ExtensionContextManagerBase:
        return ExtensionContextManagerBase(
            name, self.extensions, self.execution_context
        )

    def init(self) -> ExtensionContextManagerBase:
        return self._hooks(Extension.on_init.__name__)

    def operation(self) -> ExtensionContextManagerBase:
        return self._hooks(Extension.on_operation.__name__)

    def parsing(self) -> ExtensionContextManagerBase:
        return self._hooks(Extension.on_parse.__name__)

    def execution(self) -> ExtensionContextManagerBase:
        return self._hooks(Extension.on_execute.__name__)


class WrappedHook(NamedTuple):
    extension: Extension
    iterator: HookIterator
    is_async: bool


def _wrap_callable(
    extension: Extension, func: Hook, execution_context: ExecutionContext
) -> WrappedHook:
    if inspect.iscoroutinefunction(func):

        async def async_iterator():  # type: ignore[no-untyped-def]
            await func(extension, execution_context)
            yield

        return WrappedHook(extension, async_iterator(), True)

    def iterator():  # type: ignore[no-untyped-def]
        func(extension, execution_context)
        yield

    return WrappedHook(extension, iterator(), False)


class ExtensionContextManagerBase:
    """Runs one hook of every extension, usable as ``with`` for sync hooks
    and as ``async with`` for both kinds"""

    __slots__ = ("hook_name", "hooks")

    def __init__(
        self,
        hook_name: str,
        extensions: List[Extension],
        execution_context: ExecutionContext,
    ):
        self.hook_name = hook_name
        self.hooks: List[WrappedHook] = []
        default = getattr(Extension, hook_name)
        for extension in extensions:
            func = getattr(type(extension), hook_name)
            if func is default:
                continue
            self.hooks.append(self._wrap(extension, func, execution_context))

    def _wrap(
        self,
        extension: Extension,
        func: Hook,
        execution_context: ExecutionContext,
    ) -> WrappedHook:
        if inspect.isgeneratorfunction(func):
            return WrappedHook(
                extension, func(extension, execution_context), False
            )
        if inspect.isasyncgenfunction(func):
            return WrappedHook(
                extension, func(extension, execution_context), True
            )
        if callable(func):
            return _wrap_callable(extension, func, execution_context)
        raise ValueError(
            "Hook {} on {} must be callable, received {!r}".format(
                self.hook_name, extension, func
            )
        )

    def run_hooks_sync(self, is_exit: bool = False) -> None:
        for hook in self.hooks:
            if hook.is_async:
                raise RuntimeError(
                    "Extension hook {}.{} is async.".format(
                        hook.extension, self.hook_name
                    )
                )
            try:
                next(hook.iterator)  # type: ignore[arg-type]
            except StopIteration:
                if not is_exit:
                    raise

    async def run_hooks_async(self, is_exit: bool = False) -> None:
        for hook in self.hooks:
            try:
                if hook.is_async:
                    await hook.iterator.__anext__()  # type: ignore[union-attr]
                else:
                    next(hook.iterator)  # type: ignore[arg-type]
            except (StopIteration, StopAsyncIteration):
                if not is_exit:
                    raise

    def __enter__(self) -> None:
        self.run_hooks_sync()

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.run_hooks_sync(is_exit=True)

    async def __aenter__(self) -> None:
        await self.run_hooks_async()

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self.run_hooks_async(is_exit=True)
