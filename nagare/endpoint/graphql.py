from typing import Any, overload, TypedDict

from asyncio import gather

from nagare.error import FieldError, GraphQLError
from nagare.schema import ExecutionResult, Schema


class GraphQLErrorObject(TypedDict, total=False):
    message: str
    path: list[str | int]
    extensions: dict[str, object]


class GraphQLRequest(TypedDict, total=False):
    query: str
    variables: dict[str, Any] | None
    operationName: str | None


class GraphQLResponse(TypedDict, total=False):
    data: dict[str, object] | None
    errors: list[GraphQLErrorObject]


BatchedRequest = list[GraphQLRequest]
BatchedResponse = list[GraphQLResponse]

SingleOrBatchedRequest = GraphQLRequest | BatchedRequest
SingleOrBatchedResponse = GraphQLResponse | BatchedResponse


def format_error(error: FieldError) -> GraphQLErrorObject:
    obj: GraphQLErrorObject = {"message": error.message}
    if error.path:
        obj["path"] = list(error.path)
    obj["extensions"] = error.extensions
    return obj


class AsyncGraphQLEndpoint:
    """Dict-in, dict-out endpoint, to be called by the web framework of
    choice

    Example:

    .. code-block:: python

        endpoint = AsyncGraphQLEndpoint(schema)

        async def handle_graphql(request):
            data = await request.json()
            result = await endpoint.dispatch(data, dict(request.headers))
            return web.json_response(result)

    """

    schema: Schema

    def __init__(
        self,
        schema: Schema,
        batching: bool = False,
    ):
        self.schema = schema
        self.batching = batching

    def process_result(self, result: ExecutionResult) -> GraphQLResponse:
        data: GraphQLResponse = {"data": result.data}

        if result.errors:
            data["errors"] = [format_error(e) for e in result.errors]

        return data

    async def _dispatch(
        self, data: GraphQLRequest, request: dict[str, Any] | None = None
    ) -> GraphQLResponse:
        assert "query" in data, "query is required"
        result = await self.schema.execute(
            query=data["query"],
            variables=data.get("variables"),
            operation_name=data.get("operationName"),
            request=request,
        )
        return self.process_result(result)

    @overload
    async def dispatch(
        self, data: GraphQLRequest, request: dict[str, Any] | None = None
    ) -> GraphQLResponse: ...

    @overload
    async def dispatch(
        self, data: BatchedRequest, request: dict[str, Any] | None = None
    ) -> BatchedResponse: ...

    async def dispatch(
        self,
        data: SingleOrBatchedRequest,
        request: dict[str, Any] | None = None,
    ) -> SingleOrBatchedResponse:
        """Dispatch graphql request to the schema

        Example:

        .. code-block:: python

            result = await endpoint.dispatch({"query": "{ hello }"})

        :param data:
            {"query": str, "variables": dict, "operationName": str}
            or list of them, when batching is enabled
        :param dict request: request metadata for the context factory
        :return: graphql response: data and errors
        """
        if isinstance(data, list):
            if not self.batching:
                raise GraphQLError("Batching is not supported")

            return list(
                await gather(*(self._dispatch(item, request) for item in data))
            )
        else:
            return await self._dispatch(data, request)
