import asyncio

import faker
import pytest

from prometheus_client import REGISTRY

from nagare.graph import Field, Graph, Node, Root, apply
from nagare.types import Integer, Sequence, String, TypeRef
from nagare.telemetry.prometheus import GraphMetrics

from .base import check_result, execute


fake = faker.Faker()


@pytest.fixture(name="graph_name")
def graph_name_fixture():
    return fake.pystr()


@pytest.fixture(name="sample_count")
def sample_count_fixture(graph_name):
    def sample_count(node, field):
        return REGISTRY.get_sample_value(
            "graph_field_time_count",
            dict(graph=graph_name, node=node, field=field),
        )

    return sample_count


def get_graph():
    def root_a(parent, args, ctx, info):
        return 1

    async def root_xs(parent, args, ctx, info):
        await asyncio.sleep(0)
        return [{"id": 1}, {"id": 2}]

    async def x_name(parent, args, ctx, info):
        return "x{}".format(parent["id"])

    return Graph(
        [
            Node(
                "X",
                [
                    Field("id", Integer),
                    Field("name", String, x_name),
                ],
            ),
            Root(
                [
                    Field("a", Integer, root_a),
                    Field("xs", Sequence[TypeRef["X"]], root_xs),
                ]
            ),
        ]
    )


@pytest.mark.asyncio
async def test_field_time(graph_name, sample_count):
    graph = apply(get_graph(), [GraphMetrics(graph_name)])

    assert sample_count("Query", "a") is None
    assert sample_count("Query", "xs") is None
    assert sample_count("X", "name") is None

    data, errors = await execute(graph, "{ a xs { id name } }")
    check_result(
        data,
        {"a": 1, "xs": [{"id": 1, "name": "x1"}, {"id": 2, "name": "x2"}]},
    )

    assert sample_count("Query", "a") == 1.0
    assert sample_count("Query", "xs") == 1.0
    assert sample_count("X", "name") == 2.0
    # default resolver is not measured
    assert sample_count("X", "id") is None


@pytest.mark.asyncio
async def test_failed_resolver_is_measured(graph_name, sample_count):
    def broken(parent, args, ctx, info):
        raise ValueError("broken")

    graph = apply(
        Graph([Root([Field("broken", Integer, broken)])]),
        [GraphMetrics(graph_name)],
    )
    data, errors = await execute(graph, "{ broken }")
    assert data is None
    assert len(errors) == 1
    assert sample_count("Query", "broken") == 1.0


@pytest.mark.asyncio
async def test_explicit_resolvers_time(graph_name, sample_count):
    async def name(parent, args, ctx, info):
        return "explicit{}".format(parent["id"])

    metrics = GraphMetrics(graph_name)
    graph = apply(get_graph(), [metrics])
    resolvers = metrics.transform_resolvers({("X", "name"): name})
    assert resolvers[("X", "name")] is not name

    data, errors = await execute(
        graph, "{ xs { name } }", resolvers=resolvers,
    )
    assert errors == []
    check_result(
        data, {"xs": [{"name": "explicit1"}, {"name": "explicit2"}]},
    )
    assert sample_count("X", "name") == 2.0


@pytest.mark.asyncio
async def test_custom_labels(graph_name):
    class ContextMetrics(GraphMetrics):
        def get_labels(self, graph_name, node_name, field_name, ctx):
            return [graph_name, node_name, ctx.principal or "anonymous"]

    graph = apply(get_graph(), [ContextMetrics(graph_name)])
    await execute(graph, "{ a }")
    assert REGISTRY.get_sample_value(
        "graph_field_time_count",
        dict(graph=graph_name, node="Query", field="anonymous"),
    ) == 1.0
