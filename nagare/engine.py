import asyncio
import logging
import dataclasses

from typing import (
    Any,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
)
from collections.abc import Iterable, Mapping as MappingABC

from .context import ExecutionContext, ResolutionContext
from .error import (
    ExecutionTimeout,
    FieldError,
    GraphQLError,
    NullabilityViolation,
    Path,
    ResolutionError,
)
from .executors.asyncio import AsyncIOExecutor
from .executors.base import BaseAsyncExecutor
from .graph import Field, Graph, Node, Nothing, Resolver
from .operation import OperationType
from .query import (
    FieldOrLink,
    Link as QueryLink,
    Node as QueryNode,
    Field as QueryField,
    NoDefault,
    QueryTransformer,
    Variable,
)
from .registry import ResolverRegistry, default_resolver, resolver_name
from .result import Failure, ListValue, ObjectValue, Result, Success
from .types import (
    GenericMeta,
    SequenceMeta,
    TypeRefMeta,
    coerce_leaf,
    is_nullable,
    unwrap_optional,
)
from .utils import ImmutableDict, freeze


log = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class FieldInfo:
    """Passed to the resolver as the last argument"""

    name: str
    alias: Optional[str]
    result_key: str
    path: Path
    type: Optional[GenericMeta]
    nullable: bool
    #: name of the node which owns this field
    parent_type: str
    query_field: FieldOrLink = dataclasses.field(repr=False)


class SubstituteVariables(QueryTransformer):
    """Replaces :py:class:`~nagare.query.Variable` placeholders in field
    options with the provided values or with declared defaults"""

    def __init__(self, variables: Optional[Mapping[str, Any]]) -> None:
        self._variables = variables or {}

    def _value(self, value: Any) -> Any:
        if isinstance(value, Variable):
            if value.name in self._variables:
                return self._variables[value.name]
            elif value.default is not NoDefault:
                return value.default
            raise GraphQLError(
                'Variable "${}" is required but was not provided'.format(
                    value.name
                )
            )
        elif isinstance(value, list):
            return [self._value(v) for v in value]
        elif isinstance(value, dict):
            return {k: self._value(v) for k, v in value.items()}
        return value

    def _options(self, options: Optional[dict]) -> Optional[dict]:
        if not options:
            return options
        return {k: self._value(v) for k, v in options.items()}

    def visit_field(self, obj: QueryField) -> QueryField:
        return obj.copy(options=self._options(obj.options))

    def visit_link(self, obj: QueryLink) -> QueryLink:
        return obj.copy(
            node=self.visit(obj.node), options=self._options(obj.options)
        )


def _yield_options(
    graph_field: Field, query_field: FieldOrLink
) -> Iterator[Tuple[str, Any]]:
    options = dict(query_field.options or {})
    for option in graph_field.options:
        value = options.pop(option.name, option.default)
        if value is Nothing:
            raise ResolutionError(
                'Required option "{}" for field "{}" was not provided'.format(
                    option.name, graph_field.name
                )
            )
        yield option.name, value
    # undeclared options are passed as is
    yield from options.items()


def get_options(graph_field: Field, query_field: FieldOrLink) -> ImmutableDict:
    return freeze(dict(_yield_options(graph_field, query_field)))


def _is_list_like(value: Any) -> bool:
    return isinstance(value, Iterable) and not isinstance(
        value, (str, bytes, MappingABC)
    )


def _format_path(path: Path) -> str:
    return ".".join(str(p) for p in path) or "<root>"


class Resolution:
    """State of the single request execution"""

    def __init__(
        self,
        graph: Graph,
        registry: ResolverRegistry,
        executor: BaseAsyncExecutor,
        context: ResolutionContext,
        deadline: Optional[float] = None,
    ) -> None:
        self.graph = graph
        self.registry = registry
        self.executor = executor
        self.context = context
        self.deadline = deadline

    def _failure(
        self,
        exc: BaseException,
        path: Path,
        nullable: bool,
        resolver: Optional[str] = None,
    ) -> Failure:
        if isinstance(exc, GraphQLError):
            log.debug(
                "Field %s failed: %s", _format_path(path), exc.message
            )
        else:
            log.error(
                "Resolver %s failed at %s",
                resolver,
                _format_path(path),
                exc_info=exc,
            )
            error = ResolutionError(str(exc) or type(exc).__name__)
            error.__cause__ = exc
            exc = error
        return Failure(
            FieldError.from_exception(exc, path, resolver), path, nullable
        )

    async def _call(
        self, func: Resolver, parent: Any, args: Mapping, info: FieldInfo
    ) -> Any:
        task = asyncio.ensure_future(
            self.executor.submit(func, parent, args, self.context, info)
        )
        if self.deadline is None:
            return await task

        remaining = self.deadline - asyncio.get_running_loop().time()
        try:
            done, _ = await asyncio.wait([task], timeout=max(remaining, 0))
        except asyncio.CancelledError:
            task.cancel()
            raise
        if not done:
            task.cancel()
            raise ExecutionTimeout()
        return task.result()

    async def execute_node(
        self,
        graph_node: Node,
        query_node: QueryNode,
        parent: Any,
        path: Path,
    ) -> ObjectValue:
        """Resolves selection set of the ``query_node`` against the
        ``parent`` value"""
        fields = query_node.fields
        if query_node.ordered:
            results: List[Result] = []
            for query_field in fields:
                results.append(
                    await self.resolve_field(
                        graph_node,
                        query_field,
                        parent,
                        path + (query_field.result_key,),
                    )
                )
        else:
            results = await asyncio.gather(
                *[
                    self.resolve_field(
                        graph_node, f, parent, path + (f.result_key,)
                    )
                    for f in fields
                ]
            )
        return ObjectValue(
            (f.result_key, result) for f, result in zip(fields, results)
        )

    async def resolve_field(
        self,
        graph_node: Node,
        query_field: FieldOrLink,
        parent: Any,
        path: Path,
    ) -> Result:
        graph_field = graph_node.fields_map.get(query_field.name)
        if graph_field is None:
            return self._failure(
                ResolutionError(
                    'Cannot query field "{}" on type "{}"'.format(
                        query_field.name, graph_node.name
                    )
                ),
                path,
                nullable=True,
            )

        nullable = is_nullable(graph_field.type)
        func = self.registry.lookup(graph_node.name, graph_field.name)
        resolver = resolver_name(func)
        try:
            args = get_options(graph_field, query_field)
        except ResolutionError as exc:
            return self._failure(exc, path, nullable, resolver)

        info = FieldInfo(
            name=graph_field.name,
            alias=query_field.alias,
            result_key=query_field.result_key,
            path=path,
            type=graph_field.type,
            nullable=nullable,
            parent_type=graph_node.name,
            query_field=query_field,
        )
        try:
            if func is None:
                value = default_resolver(parent, graph_field.name)
            else:
                value = await self._call(func, parent, args, info)
        except Exception as exc:
            return self._failure(exc, path, nullable, resolver)

        return await self.complete_value(
            graph_field.type, value, info, path, resolver
        )

    async def complete_value(
        self,
        type_: Optional[GenericMeta],
        value: Any,
        info: FieldInfo,
        path: Path,
        resolver: str,
    ) -> Result:
        """Checks resolved value against declared type and resolves nested
        selection set, if any"""
        nullable = is_nullable(type_)
        if value is None or value is Nothing:
            if nullable:
                return Success(None, path, nullable)
            return self._failure(
                NullabilityViolation(info.parent_type, info.name),
                path,
                nullable,
                resolver,
            )

        inner = unwrap_optional(type_) if type_ is not None else None
        query_field = info.query_field
        if isinstance(inner, SequenceMeta):
            if not _is_list_like(value):
                return self._failure(
                    ResolutionError(
                        'Expected a list for field "{}.{}", got {!r}'.format(
                            info.parent_type, info.name, type(value).__name__
                        )
                    ),
                    path,
                    nullable,
                    resolver,
                )
            items = await asyncio.gather(
                *[
                    self.complete_value(
                        inner.__item_type__, item, info, path + (i,), resolver
                    )
                    for i, item in enumerate(value)
                ]
            )
            return Success(ListValue(items), path, nullable)

        elif isinstance(inner, TypeRefMeta):
            if not isinstance(query_field, QueryLink):
                return self._failure(
                    ResolutionError(
                        'Field "{}" of type {!r} must have a selection '
                        "of subfields".format(info.name, type_)
                    ),
                    path,
                    nullable,
                    resolver,
                )
            graph_node = self.graph.nodes_map[inner.__type_name__]
            obj = await self.execute_node(
                graph_node, query_field.node, value, path
            )
            return Success(obj, path, nullable)

        if isinstance(query_field, QueryLink):
            return self._failure(
                ResolutionError(
                    'Field "{}" must not have a selection since type {!r} '
                    "has no subfields".format(info.name, type_)
                ),
                path,
                nullable,
                resolver,
            )
        try:
            value = coerce_leaf(inner, value)
        except TypeError as exc:
            return self._failure(
                ResolutionError(
                    'Field "{}.{}": {}'.format(info.parent_type, info.name, exc)
                ),
                path,
                nullable,
                resolver,
            )
        return Success(value, path, nullable)


class Engine:
    """Executes queries against the graph

    :param executor: runs resolvers, :py:class:`AsyncIOExecutor` by default
    :param timeout: seconds; resolvers still running after this deadline
        are cancelled and their fields fail with
        :py:class:`~nagare.error.ExecutionTimeout`
    """

    def __init__(
        self,
        executor: Optional[BaseAsyncExecutor] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.executor = executor or AsyncIOExecutor()
        self.timeout = timeout

    async def execute(
        self,
        execution_context: ExecutionContext,
        registry: Optional[ResolverRegistry] = None,
    ) -> Success:
        """Returns root of the resolution result tree

        :raises GraphQLError: when operation can't be executed at all
        """
        if execution_context.operation_type is OperationType.SUBSCRIPTION:
            raise GraphQLError("Subscription operations are not supported")

        graph = execution_context.graph
        query = execution_context.query
        assert query is not None
        query = SubstituteVariables(execution_context.variables).visit(query)

        if registry is None:
            registry = ResolverRegistry(graph)
        context = execution_context.context
        if context is None:
            context = execution_context.context = ResolutionContext()

        deadline = None
        if self.timeout is not None:
            deadline = asyncio.get_running_loop().time() + self.timeout

        resolution = Resolution(
            graph, registry, self.executor, context, deadline
        )
        value = await resolution.execute_node(
            graph.root, query, execution_context.root_value, ()
        )
        result = Success(value, (), nullable=True)
        execution_context.result = result
        return result
