import logging

from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Type,
    Union,
)

from graphql.error import GraphQLSyntaxError

from nagare.context import (
    ContextFactory,
    ExecutionContext,
    RequestMetadata,
    create_execution_context,
)
from nagare.denormalize import assemble
from nagare.engine import Engine
from nagare.error import FieldError, GraphQLError
from nagare.executors.base import BaseAsyncExecutor
from nagare.extensions.base_extension import Extension, ExtensionsManager
from nagare.graph import Graph, GraphTransformer, Resolver, apply
from nagare.operation import OperationType
from nagare.query import Node
from nagare.readers.graphql import read_operation
from nagare.registry import ResolverKey, ResolverRegistry
from nagare.result import Success


log = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    data: Optional[Dict[str, Any]]
    errors: List[FieldError] = field(default_factory=list)
    result: Optional[Success] = None


class Schema:
    """Entry point of the query execution

    Example:

    .. code-block:: python

        schema = Schema(
            GRAPH,
            context_factory=ContextFactory({
                'cache': DataSourceCache(InMemoryStore(), ttl=30),
            }),
            timeout=5,
        )
        result = await schema.execute('{ album(id: 1) { title } }')

    :param graph: query graph
    :param mutation: optional mutation graph
    :param executor: runs resolvers, asyncio executor by default
    :param resolvers: mapping of ``(type, field)`` to resolver, takes
        precedence over resolvers defined in the graphs
    :param context_factory: creates resolution context for every request
    :param extensions: list of extensions or extension classes
    :param transformers: graph transformers applied once during creation
    :param timeout: request deadline in seconds
    :param root_value: parent value of the top-level fields
    """

    def __init__(
        self,
        graph: Graph,
        mutation: Optional[Graph] = None,
        *,
        executor: Optional[BaseAsyncExecutor] = None,
        resolvers: Optional[Mapping[ResolverKey, Resolver]] = None,
        context_factory: Optional[ContextFactory] = None,
        extensions: Optional[
            Sequence[Union[Extension, Type[Extension]]]
        ] = None,
        transformers: Optional[Sequence[GraphTransformer]] = None,
        timeout: Optional[float] = None,
        root_value: Any = None,
    ):
        self.engine = Engine(executor=executor, timeout=timeout)
        self.context_factory = context_factory or ContextFactory()
        self.root_value = root_value

        execution_context = create_execution_context()
        execution_context.transformers = tuple(transformers or ())
        extensions_manager = ExtensionsManager(
            execution_context=execution_context,
            extensions=extensions or [],
        )
        # extensions are instantiated once and shared by all requests
        self.extensions = extensions_manager.extensions
        with extensions_manager.init():
            pass

        self.graph = apply(graph, execution_context.transformers)
        if resolvers is not None:
            for transformer in execution_context.transformers:
                resolvers = transformer.transform_resolvers(resolvers)
        self._query_registry = ResolverRegistry(self.graph, resolvers)
        self.mutation: Optional[Graph] = None
        self._mutation_registry: Optional[ResolverRegistry] = None
        if mutation is not None:
            self.mutation = apply(mutation, execution_context.transformers)
            self._mutation_registry = ResolverRegistry(
                self.mutation, resolvers
            )

    def _read(self, execution_context: ExecutionContext) -> None:
        try:
            execution_context.operation = read_operation(
                execution_context.query_src,
                execution_context.variables,
                execution_context.request_operation_name,
            )
        except GraphQLSyntaxError as e:
            raise GraphQLError("Failed to parse query: {}".format(e.message))
        except TypeError as e:
            raise GraphQLError("Failed to read query: {}".format(e))
        execution_context.query = execution_context.operation.query

    def _registry(self, execution_context: ExecutionContext) -> ResolverRegistry:
        if execution_context.operation_type is OperationType.MUTATION:
            if self._mutation_registry is None:
                raise GraphQLError("Mutations are not supported")
            return self._mutation_registry
        return self._query_registry

    async def execute(
        self,
        query: Union[str, Node],
        variables: Optional[Dict] = None,
        operation_name: Optional[str] = None,
        request: Optional[RequestMetadata] = None,
    ) -> ExecutionResult:
        """Executes query, never raises errors which are caused by the
        query itself, they are returned in the result instead

        :param query: GraphQL query string or already read query
        :param variables: query variables
        :param operation_name: name of the operation to execute
        :param request: request metadata, passed to the context factory
        """
        execution_context = create_execution_context(
            query=query,
            variables=variables,
            operation_name=operation_name,
            query_graph=self.graph,
            mutation_graph=self.mutation,
            request=request,
            root_value=self.root_value,
        )
        extensions_manager = ExtensionsManager(
            execution_context=execution_context,
            extensions=self.extensions,
        )

        data = None
        async with extensions_manager.operation():
            try:
                if execution_context.operation is None:
                    async with extensions_manager.parsing():
                        self._read(execution_context)

                registry = self._registry(execution_context)
                execution_context.context = self.context_factory.create(
                    execution_context.request
                )
                async with extensions_manager.execution():
                    result = await self.engine.execute(
                        execution_context, registry
                    )
                    data, errors = assemble(result)
                    execution_context.errors = errors
            except GraphQLError as e:
                log.debug("Operation failed: %s", e.message)
                execution_context.result = None
                execution_context.errors = [FieldError.from_exception(e, ())]

        return ExecutionResult(
            data, execution_context.errors or [], execution_context.result
        )
