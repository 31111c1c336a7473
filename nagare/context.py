from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from nagare.error import FieldError
from nagare.graph import Graph, GraphTransformer
from nagare.operation import Operation, OperationType
from nagare.query import Node
from nagare.result import Result
from nagare.utils import ImmutableDict, freeze


RequestMetadata = Mapping[str, Any]
DataSourceFactory = Callable[[RequestMetadata], Any]


class ResolutionContext(Mapping):
    """Per-request context, shared by all resolvers of the request

    Behaves like a read-only mapping of data sources:

    .. code-block:: python

        async def resolve_track(parent, args, ctx, info):
            return await ctx['tracks'].get(f"/tracks/{args['id']}")

    """

    __slots__ = ("_data_sources", "_principal", "_metadata")

    def __init__(
        self,
        data_sources: Optional[Mapping[str, Any]] = None,
        principal: Any = None,
        metadata: Optional[RequestMetadata] = None,
    ) -> None:
        object.__setattr__(self, "_data_sources", ImmutableDict(data_sources or {}))
        object.__setattr__(self, "_principal", principal)
        object.__setattr__(self, "_metadata", freeze(metadata or {}))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(
            "{} object is immutable".format(self.__class__.__name__)
        )

    __delattr__ = __setattr__  # type: ignore[assignment]

    @property
    def principal(self) -> Any:
        """Authenticated principal of the request, if any"""
        return self._principal

    @property
    def metadata(self) -> ImmutableDict:
        return self._metadata

    def __len__(self) -> int:
        return len(self._data_sources)

    def __iter__(self) -> Iterator:
        return iter(self._data_sources)

    def __getitem__(self, item: Any) -> Any:
        try:
            return self._data_sources[item]
        except KeyError:
            raise KeyError(
                "Data source {!r} is not specified "
                "in the resolution context".format(item)
            )

    def __repr__(self) -> str:
        return "<{} {!r}>".format(
            self.__class__.__name__, list(self._data_sources)
        )


class ContextFactory:
    """Creates :py:class:`ResolutionContext` once per request

    :param data_sources: mapping of names to data sources; a value is either
        shared instance, or a callable which receives request metadata and
        returns new instance for every request (see :py:func:`per_request`)
    :param principal: callable which extracts authenticated principal from
        request metadata
    """

    def __init__(
        self,
        data_sources: Optional[Mapping[str, Any]] = None,
        principal: Optional[Callable[[RequestMetadata], Any]] = None,
    ) -> None:
        self._data_sources = dict(data_sources or {})
        self._principal = principal

    def create(
        self, request_metadata: Optional[RequestMetadata] = None
    ) -> ResolutionContext:
        metadata = request_metadata or {}
        data_sources = {}
        for name, source in self._data_sources.items():
            if isinstance(source, per_request):
                data_sources[name] = source(metadata)
            else:
                data_sources[name] = source
        principal = self._principal(metadata) if self._principal else None
        return ResolutionContext(data_sources, principal, metadata)


class per_request:
    """Marks data source factory, which should be called for every request

    .. code-block:: python

        ContextFactory({
            'cache': SHARED_CACHE,
            'tracks': per_request(lambda meta: HTTPSource(...)),
        })

    """

    __slots__ = ("factory",)

    def __init__(self, factory: DataSourceFactory) -> None:
        self.factory = factory

    def __call__(self, metadata: RequestMetadata) -> Any:
        return self.factory(metadata)


_type_names: Dict[OperationType, str] = {
    OperationType.QUERY: "Query",
    OperationType.MUTATION: "Mutation",
}


@dataclass
class ExecutionContext:
    query_src: str
    variables: Optional[Dict[str, Any]]
    request: RequestMetadata
    query: Optional[Node] = None
    query_graph: Optional[Graph] = None
    mutation_graph: Optional[Graph] = None
    operation: Optional[Operation] = None
    request_operation_name: Optional[str] = None
    """Operation name from request's json operationName"""
    context: Optional[ResolutionContext] = None
    root_value: Any = None
    result: Optional[Result] = None
    errors: Optional[List[FieldError]] = None
    transformers: Tuple[GraphTransformer, ...] = ()

    @property
    def operation_name(self) -> Optional[str]:
        if self.request_operation_name is not None:
            return self.request_operation_name

        if self.operation is None:
            return None

        return self.operation.name

    @property
    def operation_type(self) -> OperationType:
        if self.operation is None:
            if self.query is not None and self.query.ordered:
                return OperationType.MUTATION
            return OperationType.QUERY
        return self.operation.type

    @property
    def operation_type_name(self) -> str:
        return _type_names.get(self.operation_type, "Query")

    @property
    def graph(self) -> Graph:
        if self.operation_type is OperationType.MUTATION:
            if self.mutation_graph is not None:
                return self.mutation_graph

        assert self.query_graph is not None
        return self.query_graph


def create_execution_context(
    query: Union[str, Node, None] = None,
    variables: Optional[Dict] = None,
    operation_name: Optional[str] = None,
    query_graph: Optional[Graph] = None,
    mutation_graph: Optional[Graph] = None,
    request: Optional[RequestMetadata] = None,
    **kwargs: Any,
) -> ExecutionContext:
    query_src = None
    query_node = None
    if isinstance(query, str):
        query_src = query
    elif isinstance(query, Node):
        query_node = query
        if "operation" not in kwargs:
            op_type = OperationType.QUERY
            if query.ordered:
                op_type = OperationType.MUTATION
            kwargs["operation"] = Operation(op_type, query)

    return ExecutionContext(
        query_src=query_src or "",
        variables=variables,
        request=request or {},
        request_operation_name=operation_name,
        query_graph=query_graph,
        mutation_graph=mutation_graph,
        query=query_node,
        **kwargs,
    )
