import pytest

from nagare.graph import Field, Graph, GraphTransformer, Node, Option, Root
from nagare.graph import apply
from nagare.types import Integer, Optional, Sequence, String, TypeRef


def resolve_user(parent, args, ctx, info):
    pass


def test_undefined_ref():
    with pytest.raises(ValueError) as err:
        Graph([
            Root([Field("user", Optional[TypeRef["User"]], resolve_user)]),
        ])
    assert err.value.args[0] == (
        'Field "Query.user" refers to undefined node "User"'
    )

    with pytest.raises(ValueError):
        Graph([
            Node("User", [Field("friends", Sequence[TypeRef["Friend"]])]),
        ])


def test_root_fields_are_merged():
    graph = Graph([
        Node("User", [Field("id", Integer)]),
        Root([Field("user", TypeRef["User"], resolve_user)]),
        Root([Field("version", String)]),
    ])
    assert graph.root.name == "Query"
    assert list(graph.root.fields_map) == ["user", "version"]
    assert list(graph.nodes_map) == ["User"]


def test_from_graph():
    query_graph = Graph([
        Node("User", [Field("id", Integer)]),
        Root([Field("user", TypeRef["User"], resolve_user)]),
    ])
    mutation_graph = Graph.from_graph(
        query_graph,
        Root([
            Field("createUser", TypeRef["User"], resolve_user,
                  options=[Option("name", String)]),
        ], name="Mutation"),
    )
    assert mutation_graph.root.name == "Mutation"
    assert list(mutation_graph.root.fields_map) == ["createUser"]
    assert mutation_graph.nodes_map["User"] is query_graph.nodes_map["User"]


def test_apply():
    class Describe(GraphTransformer):
        def visit_field(self, obj):
            field = super().visit_field(obj)
            field.description = "visited"
            return field

    graph = Graph([Root([Field("version", String, description="v")])])
    transformed = apply(graph, [Describe()])
    assert transformed.root.fields_map["version"].description == "visited"
    assert graph.root.fields_map["version"].description == "v"
    assert transformed is not graph
