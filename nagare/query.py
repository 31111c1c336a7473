"""
nagare.query
~~~~~~~~~~~~

Selection nodes -- the parsed query which is going to be executed.
Query language doesn't matter, GraphQL queries are read into these nodes
by :py:mod:`nagare.readers.graphql`.

Example:

.. code-block:: graphql

    { album(id: $id) { title tracks { name } } }

This query will be read internally as:

.. code-block:: python

    Node([Link('album',
               Node([Field('title'),
                     Link('tracks', Node([Field('name')]))]),
               options={'id': Variable('id')})])

Expected nullability and list-ness of every selection come from the
declared type of the corresponding graph field.
"""

import typing as t

from functools import cached_property
from itertools import chain
from collections import OrderedDict
from collections.abc import Sequence

from .utils import const


T = t.TypeVar("T", bound="Base")

#: Marks variable without default value
NoDefault = const("NoDefault")


class Variable:
    """Placeholder for a variable value inside field arguments

    :param name: name of the variable, without ``$``
    :param default: value to use when variable was not provided
    """

    __slots__ = ("name", "default")

    def __init__(self, name: str, default: t.Any = NoDefault) -> None:
        self.name = name
        self.default = default

    def __repr__(self) -> str:
        return "Variable({!r})".format(self.name)

    def __eq__(self, other: t.Any) -> bool:
        return (
            self.__class__ is other.__class__
            and self.name == other.name
            and self.default == other.default
        )

    def __hash__(self) -> int:
        return hash(self.name)


class Base:
    __attrs__: t.Tuple[str, ...] = ()

    def __repr__(self) -> str:
        kwargs = ", ".join(
            "{}={!r}".format(attr, self.__dict__[attr])
            for attr in self.__attrs__
        )
        return "{}({})".format(self.__class__.__name__, kwargs)

    def __eq__(self, other: t.Any) -> bool:
        return self.__class__ is other.__class__ and all(
            self.__dict__[attr] == other.__dict__[attr]
            for attr in self.__attrs__
        )

    def __ne__(self, other: t.Any) -> bool:
        return not self.__eq__(other)

    def copy(self: T, **kwargs: t.Any) -> T:
        obj = self.__class__.__new__(self.__class__)
        obj.__dict__.update(
            (attr, kwargs.get(attr, self.__dict__[attr]))
            for attr in self.__attrs__
        )
        return obj


class FieldBase(Base):
    name: str
    options: t.Optional[t.Dict[str, t.Any]]
    alias: t.Optional[str]

    @cached_property
    def result_key(self) -> str:
        if self.alias is not None:
            return self.alias
        else:
            return self.name

    def __hash__(self) -> int:
        return hash((self.name, self.alias))


class Field(FieldBase):
    """Represents a leaf selection

    :param name: name of the field
    :param optional options: field arguments -- mapping of names to values
    :param optional alias: field's name in result
    """

    __attrs__ = ("name", "options", "alias")

    def __init__(
        self,
        name: str,
        options: t.Optional[t.Dict[str, t.Any]] = None,
        alias: t.Optional[str] = None,
    ):
        self.name = name
        self.options = options
        self.alias = alias

    def accept(self, visitor: "QueryTransformer") -> t.Any:
        return visitor.visit_field(self)


class Link(FieldBase):
    """Represents a selection with nested selection set

    :param name: name of the field
    :param node: nested selection set -- :py:class:`~nagare.query.Node`
    :param optional options: field arguments -- mapping of names to values
    :param optional alias: field's name in result
    """

    __attrs__ = ("name", "node", "options", "alias")

    def __init__(
        self,
        name: str,
        node: "Node",
        options: t.Optional[t.Dict[str, t.Any]] = None,
        alias: t.Optional[str] = None,
    ):
        self.name = name
        self.node = node
        self.options = options
        self.alias = alias

    def accept(self, visitor: "QueryTransformer") -> t.Any:
        return visitor.visit_link(self)


FieldOrLink = t.Union[Field, Link]


class Node(Base):
    """Represents selection set

    :param fields: list of :py:class:`~nagare.query.Field` and
        :py:class:`~nagare.query.Link`
    :param ordered: whether to resolve fields of this node sequentially
        in order or not (used for mutations)
    """

    __attrs__ = ("fields", "ordered")

    def __init__(
        self,
        fields: t.Sequence[FieldOrLink],
        ordered: bool = False,
    ) -> None:
        self.fields = list(fields)
        self.ordered = ordered

    @cached_property
    def result_map(self) -> "OrderedDict[str, FieldOrLink]":
        return OrderedDict((f.result_key, f) for f in self.fields)

    def accept(self, visitor: "QueryTransformer") -> t.Any:
        return visitor.visit_node(self)

    def __hash__(self) -> int:
        return hash(tuple(self.fields))


def _merge(nodes: t.Iterable[Node]) -> t.Iterator[FieldOrLink]:
    visited_fields = OrderedDict()
    to_merge: "OrderedDict[t.Tuple, t.List[Node]]" = OrderedDict()
    links = {}
    for field in chain.from_iterable(n.fields for n in nodes):
        key = (field.name, field.alias)
        if isinstance(field, Link):
            if key not in to_merge:
                to_merge[key] = [field.node]
                links[key] = field
                # reserve position of the first occurrence
                visited_fields.setdefault(key, None)
            else:
                to_merge[key].append(field.node)
        elif key not in visited_fields:
            visited_fields[key] = field

    for key, field in visited_fields.items():
        if field is None:
            yield links[key].copy(node=merge(to_merge[key]))
        else:
            yield field


def merge(nodes: t.Sequence[Node]) -> Node:
    """Merges multiple selection sets into one, keeping order of the first
    occurrence of every result key

    :param nodes: list of :py:class:`~nagare.query.Node`
    :return: merged :py:class:`~nagare.query.Node`
    """
    assert isinstance(nodes, Sequence), type(nodes)
    ordered = any(n.ordered for n in nodes)
    return Node(list(_merge(nodes)), ordered=ordered)


class QueryTransformer:
    def visit(self, obj: t.Any) -> t.Any:
        return obj.accept(self)

    def visit_field(self, obj: Field) -> Field:
        return obj.copy()

    def visit_link(self, obj: Link) -> Link:
        return obj.copy(node=self.visit(obj.node))

    def visit_node(self, obj: Node) -> Node:
        return obj.copy(fields=[self.visit(f) for f in obj.fields])
