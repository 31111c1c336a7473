import asyncio

import pytest

from nagare import query as q
from nagare.context import ContextFactory, per_request
from nagare.error import ExecutionTimeout, GraphQLError
from nagare.graph import Field, Graph, Node, Option, Root
from nagare.schema import Schema
from nagare.types import Boolean, Integer, Optional, Sequence, String, TypeRef

from .base import Mock


def resolve_user(parent, args, ctx, info):
    return {"id": args["id"], "name": "user{}".format(args["id"])}


async def resolve_friends(parent, args, ctx, info):
    return [{"id": parent["id"] + 1, "name": "friend"}]


GRAPH = Graph([
    Node("User", [
        Field("id", Integer),
        Field("name", String),
        Field("friends", Sequence[TypeRef["User"]], resolve_friends),
    ]),
    Root([
        Field("user", Optional[TypeRef["User"]], resolve_user,
              options=[Option("id", Integer)]),
        Field("whoami", Optional[String],
              lambda parent, args, ctx, info: ctx.principal),
    ]),
])


def test_execute_query():
    schema = Schema(GRAPH)
    result = asyncio.run(
        schema.execute("query Q($id: Int!) { user(id: $id) { name } }",
                       {"id": 3})
    )
    assert result.data == {"user": {"name": "user3"}}
    assert result.errors == []
    assert result.result is not None


@pytest.mark.asyncio
async def test_execute_node():
    schema = Schema(GRAPH)
    query = q.Node([
        q.Link("user", q.Node([q.Field("id")]), options={"id": 1}),
    ])
    result = await schema.execute(query)
    assert result.data == {"user": {"id": 1}}


@pytest.mark.asyncio
async def test_context_is_created_once_per_request():
    factory = Mock(return_value="source")
    schema = Schema(
        GRAPH,
        context_factory=ContextFactory(
            {"source": per_request(factory)},
            principal=lambda meta: meta.get("user"),
        ),
    )
    result = await schema.execute(
        "{ a: user(id: 1) { friends { friends { name } } }"
        "  b: user(id: 2) { name } whoami }",
        request={"user": "alice"},
    )
    assert result.errors == []
    assert result.data["whoami"] == "alice"
    factory.assert_called_once_with({"user": "alice"})


@pytest.mark.asyncio
@pytest.mark.parametrize("src, message", [
    ("{ user(id: 1) { name }", "Failed to parse query"),
    ("query A { whoami } query B { whoami }", "exactly one operation"),
    ("query Q($id: Int!) { user(id: $id) { name } }",
     'Variable "id" is not provided'),
    ("subscription { whoami }", "Unsupported operation type"),
    ("mutation { whoami }", "Mutations are not supported"),
])
async def test_operation_errors(src, message):
    schema = Schema(GRAPH)
    result = await schema.execute(src)
    assert result.data is None
    assert len(result.errors) == 1
    assert message in result.errors[0].message
    assert result.errors[0].path == ()
    assert isinstance(result.errors[0].error, GraphQLError)


@pytest.mark.asyncio
async def test_missing_variable_in_query_node():
    schema = Schema(GRAPH)
    query = q.Node([
        q.Link("user", q.Node([q.Field("id")]),
               options={"id": q.Variable("id")}),
    ])
    result = await schema.execute(query)
    assert result.data is None
    assert result.errors[0].message == (
        'Variable "$id" is required but was not provided'
    )

    result = await schema.execute(query, variables={"id": 5})
    assert result.data == {"user": {"id": 5}}


@pytest.mark.asyncio
async def test_field_errors():
    schema = Schema(GRAPH)
    result = await schema.execute("{ user { name } whoami }")
    assert result.data == {"user": None, "whoami": None}
    assert [e.path for e in result.errors] == [("user",)]


@pytest.mark.asyncio
async def test_mutation():
    log = []

    async def like(parent, args, ctx, info):
        await asyncio.sleep(0.01 if args["id"] == 1 else 0)
        log.append(args["id"])
        return True

    mutation = Graph.from_graph(GRAPH, Root([
        Field("like", Boolean, like, options=[Option("id", Integer)]),
    ], name="Mutation"))
    schema = Schema(GRAPH, mutation)

    result = await schema.execute(
        "mutation { a: like(id: 1) b: like(id: 2) }"
    )
    assert result.data == {"a": True, "b": True}
    assert log == [1, 2]

    result = await schema.execute("{ user(id: 1) { id } }")
    assert result.data == {"user": {"id": 1}}


@pytest.mark.asyncio
async def test_timeout():
    async def slow(parent, args, ctx, info):
        await asyncio.sleep(10)

    graph = Graph([
        Root([
            Field("fast", Integer, lambda *_: 1),
            Field("slow", Optional[Integer], slow),
        ]),
    ])
    schema = Schema(graph, timeout=0.05)
    result = await schema.execute("{ fast slow }")
    assert result.data == {"fast": 1, "slow": None}
    assert result.errors[0].extensions == {"code": ExecutionTimeout.code}


@pytest.mark.asyncio
async def test_resolvers_mapping():
    schema = Schema(
        GRAPH, resolvers={("User", "name"): lambda *_: "overridden"},
    )
    result = await schema.execute("{ user(id: 1) { name } }")
    assert result.data == {"user": {"name": "overridden"}}
