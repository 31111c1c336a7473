"""
nagare.registry
~~~~~~~~~~~~~~~

Maps ``(type name, field name)`` pairs to resolvers. Fields without
registered resolver are resolved by :py:func:`default_resolver`, which
reads same-named property of the parent value using
:py:func:`get_named_field`.

Parent values can opt into custom property lookup by implementing
``__get_field__(name)``; it should return :py:const:`nagare.graph.Nothing`
when property is missing. Other representations can be supported by
registering an implementation:

.. code-block:: python

    @get_named_field.register(MyRecord)
    def _(parent, name):
        return parent.lookup(name, Nothing)

"""

import typing as t

from functools import singledispatch
from collections.abc import Mapping

from .graph import Graph, Nothing, Resolver
from .utils import ImmutableDict


ResolverKey = t.Tuple[str, str]


@singledispatch
def get_named_field(parent: t.Any, name: str) -> t.Any:
    """Returns property ``name`` of the parent value or
    :py:const:`~nagare.graph.Nothing` when it is missing"""
    if parent is None:
        return Nothing
    get_field = getattr(parent, "__get_field__", None)
    if get_field is not None:
        return get_field(name)
    return getattr(parent, name, Nothing)


@get_named_field.register(Mapping)
def _get_mapping_field(parent: Mapping, name: str) -> t.Any:
    return parent.get(name, Nothing)


def default_resolver(parent: t.Any, name: str) -> t.Any:
    return get_named_field(parent, name)


class ResolverRegistry:
    """Immutable mapping of resolvers, built once per graph

    :param graph: graph definition, resolvers of the fields are registered
    :param resolvers: additional mapping of ``(type, field)`` to resolver,
        takes precedence over resolvers defined in the graph
    """

    __slots__ = ("_resolvers",)

    def __init__(
        self,
        graph: Graph,
        resolvers: t.Optional[t.Mapping[ResolverKey, Resolver]] = None,
    ) -> None:
        registry: t.Dict[ResolverKey, Resolver] = {}
        for node in [graph.root] + graph.nodes:
            for field in node.fields:
                if field.func is not None:
                    registry[(node.name, field.name)] = field.func
        if resolvers:
            registry.update(resolvers)
        self._resolvers: ImmutableDict[ResolverKey, Resolver] = ImmutableDict(
            registry
        )

    def __len__(self) -> int:
        return len(self._resolvers)

    def __contains__(self, key: ResolverKey) -> bool:
        return key in self._resolvers

    def lookup(
        self, type_name: str, field_name: str
    ) -> t.Optional[Resolver]:
        return self._resolvers.get((type_name, field_name))


def resolver_name(func: t.Optional[t.Callable]) -> str:
    if func is None:
        return "default"
    return getattr(
        func, "__qualname__", getattr(func, "__name__", repr(func))
    )
