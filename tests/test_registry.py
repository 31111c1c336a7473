import pytest

from nagare.graph import Field, Graph, Node, Nothing, Root
from nagare.registry import (
    ResolverRegistry,
    default_resolver,
    get_named_field,
    resolver_name,
)
from nagare.types import String, TypeRef


def resolve_title(parent, args, ctx, info):
    return "title"


def test_get_named_field():
    class Track:
        title = "Fool"
        year = None

    assert get_named_field({"title": "Fool"}, "title") == "Fool"
    assert get_named_field({"title": None}, "title") is None
    assert get_named_field({}, "title") is Nothing
    assert get_named_field(Track(), "title") == "Fool"
    assert get_named_field(Track(), "year") is None
    assert get_named_field(Track(), "album") is Nothing
    assert get_named_field(None, "title") is Nothing


def test_get_named_field_protocol():
    class Lazy:
        def __get_field__(self, name):
            return name.upper()

    assert default_resolver(Lazy(), "title") == "TITLE"


def test_get_named_field_registration():
    class Row(tuple):
        pass

    @get_named_field.register(Row)
    def _get_row_field(parent, name):
        return parent[0] if name == "first" else Nothing

    assert default_resolver(Row((1, 2)), "first") == 1
    assert default_resolver(Row((1, 2)), "second") is Nothing


def test_registry():
    def other(parent, args, ctx, info):
        return "other"

    graph = Graph([
        Node("Track", [
            Field("title", String, resolve_title),
            Field("name", String),
        ]),
        Root([Field("track", TypeRef["Track"])]),
    ])
    registry = ResolverRegistry(graph)
    assert len(registry) == 1
    assert ("Track", "title") in registry
    assert registry.lookup("Track", "title") is resolve_title
    assert registry.lookup("Track", "name") is None
    assert registry.lookup("Query", "track") is None

    registry = ResolverRegistry(graph, {("Track", "title"): other,
                                        ("Query", "track"): other})
    assert registry.lookup("Track", "title") is other
    assert registry.lookup("Query", "track") is other


def test_registry_is_frozen():
    graph = Graph([Root([Field("a", String, resolve_title)])])
    registry = ResolverRegistry(graph)
    with pytest.raises(TypeError):
        registry._resolvers[("Query", "b")] = resolve_title
    with pytest.raises(AttributeError):
        registry.extra = 1


def test_resolver_name():
    assert resolver_name(None) == "default"
    assert resolver_name(resolve_title) == "resolve_title"
