import hashlib

import pytest

from nagare.context import create_execution_context
from nagare.extensions.sentry import SentryTracing
from nagare.graph import Field, Graph, Root
from nagare.schema import Schema
from nagare.types import Integer, Optional, String

from ..base import MagicMock, call, patch


def broken(parent, args, ctx, info):
    raise ValueError("broken")


GRAPH = Graph([
    Root([
        Field("hello", String, lambda *_: "world"),
        Field("broken", Optional[Integer], broken),
    ]),
])


def test_resource_name():
    src = "query Hello { hello }"
    digest = hashlib.md5(src.encode("utf-8")).hexdigest()
    ext = SentryTracing()

    execution_context = create_execution_context(src)
    assert ext.get_resource_name(execution_context) == digest

    execution_context = create_execution_context(src, operation_name="Hello")
    assert ext.get_resource_name(execution_context) == "Hello:" + digest


@pytest.mark.asyncio
async def test_spans():
    parent = MagicMock()
    with patch("nagare.extensions.sentry.get_current_span",
               return_value=parent):
        schema = Schema(GRAPH, extensions=[SentryTracing()])
        result = await schema.execute(
            "query Hello { hello broken }", operation_name="Hello",
        )

    assert result.data == {"hello": "world", "broken": None}
    assert parent.start_child.call_args_list == [
        call(op="gql", description="Hello"),
        call(op="parsing", description="Parsing"),
        call(op="execution", description="Execution"),
    ]
    gql_span = parent.start_child.return_value.__enter__.return_value
    gql_span.set_tag.assert_any_call("graphql.operation_type", "Query")
    gql_span.set_data.assert_any_call(
        "graphql.query", "query Hello { hello broken }",
    )
    gql_span.set_data.assert_any_call("graphql.errors", 1)


@pytest.mark.asyncio
async def test_without_sentry_client():
    # sentry_sdk is not initialized, spans are no-op
    schema = Schema(GRAPH, extensions=[SentryTracing])
    result = await schema.execute("{ hello }")
    assert result.data == {"hello": "world"}
    assert result.errors == []
