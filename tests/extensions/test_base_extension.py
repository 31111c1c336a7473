import pytest

from nagare.extensions.base_extension import Extension
from nagare.graph import Field, Graph, Root
from nagare.schema import Schema
from nagare.types import String


GRAPH = Graph([
    Root([Field("hello", String, lambda *_: "world")]),
])


class TraceExtension(Extension):
    def __init__(self, log):
        self.log = log

    def on_init(self, execution_context):
        self.log.append("init")
        yield
        self.log.append("init-end")

    def on_operation(self, execution_context):
        self.log.append("operation")
        yield
        self.log.append(
            ("operation-end", execution_context.operation_type_name)
        )

    async def on_parse(self, execution_context):
        self.log.append(("parse", execution_context.operation))
        yield
        self.log.append(("parse-end", execution_context.operation.name))

    def on_execute(self, execution_context):
        self.log.append(("execute", execution_context.context is not None))
        yield
        self.log.append(("execute-end", execution_context.result is not None))


@pytest.mark.asyncio
async def test_hooks_order():
    log = []
    schema = Schema(GRAPH, extensions=[TraceExtension(log)])
    assert log == ["init", "init-end"]

    log.clear()
    result = await schema.execute("query Hello { hello }")
    assert result.data == {"hello": "world"}
    assert log == [
        "operation",
        ("parse", None),
        ("parse-end", "Hello"),
        ("execute", True),
        ("execute-end", True),
        ("operation-end", "Query"),
    ]


@pytest.mark.asyncio
async def test_operation_hook_sees_errors():
    errors = []

    class ErrorsExtension(Extension):
        def on_operation(self, execution_context):
            yield
            errors.extend(execution_context.errors)

    schema = Schema(GRAPH, extensions=[ErrorsExtension])
    result = await schema.execute("{ hello ")
    assert result.data is None
    assert [e.message for e in errors] == [
        e.message for e in result.errors
    ]
    assert errors[0].message.startswith("Failed to parse query")


@pytest.mark.asyncio
async def test_callable_hook():
    calls = []

    class CallableExtension(Extension):
        async def on_execute(self, execution_context):
            calls.append(execution_context.operation_name)

    schema = Schema(GRAPH, extensions=[CallableExtension()])
    await schema.execute("{ hello }", operation_name=None)
    assert calls == [None]


def test_async_init_hook_is_not_supported():
    class AsyncInit(Extension):
        async def on_init(self, execution_context):
            yield

    with pytest.raises(RuntimeError, match="is async"):
        Schema(GRAPH, extensions=[AsyncInit()])
