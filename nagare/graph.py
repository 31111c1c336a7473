"""
    nagare.graph
    ~~~~~~~~~~~~

    Graph is defined by nodes (object types) and their fields. Every field
    has a declared type and optionally a resolver function; fields without
    resolver are resolved by reading a same-named property of the parent
    value.

"""

import typing as t

from abc import ABC, abstractmethod
from functools import reduce, cached_property
from collections import OrderedDict

from .types import (
    GenericMeta,
    OptionalMeta,
    SequenceMeta,
    TypeRefMeta,
)
from .utils import const


#: Special constant which is returned when parent value doesn't have
#: requested property, to distinguish it from present ``None`` value
Nothing = const("Nothing")

QUERY_ROOT_NAME = "Query"


class AbstractBase(ABC):
    @abstractmethod
    def accept(self, visitor: "AbstractGraphVisitor") -> t.Any:
        pass


class Option(AbstractBase):
    """Defines an option (argument) of the field

    Options without default value are **required**.

    Example of a required option::

        Option('id', Integer)

    Example of an optional option::

        Option('size', Integer, default=100)

    """

    def __init__(
        self,
        name: str,
        type_: t.Optional[GenericMeta],
        *,
        default: t.Any = Nothing,
        description: t.Optional[str] = None,
    ):
        """
        :param name: name of the option
        :param type_: type of the option or ``None``
        :param default: default option value
        :param description: description of the option
        """
        self.name = name
        self.type = type_
        self.default = default
        self.description = description

    def __repr__(self) -> str:
        return "{}({!r}, {!r}, ...)".format(
            self.__class__.__name__, self.name, self.type
        )

    def accept(self, visitor: "AbstractGraphVisitor") -> t.Any:
        return visitor.visit_option(self)


R = t.TypeVar("R")

SyncAsync = t.Union[R, t.Awaitable[R]]

# (parent, args, context, info) -> value
Resolver = t.Callable[[t.Any, t.Mapping, t.Any, t.Any], SyncAsync[t.Any]]


class Field(AbstractBase):
    """Defines a field of the node

    Example::

        graph = Graph([
            Node('Track', [
                Field('title', String),
                Field('album', Optional[TypeRef['Album']], resolve_album),
            ]),
        ])

    Example with options::

        graph = Graph([
            Root([
                Field('track', Optional[TypeRef['Track']], resolve_track,
                      options=[Option('id', ID)]),
            ]),
        ])

    Resolver protocol::

        def func(parent, args, context, info) -> T
        async def func(parent, args, context, info) -> T

    Where:

    - ``parent`` - value produced by the enclosing resolver, or the root
      value for the top-level fields
    - ``args`` - mapping of arguments, with variables substituted and
      defaults applied
    - ``context`` - :py:class:`nagare.context.ResolutionContext`
    - ``info`` - :py:class:`nagare.engine.FieldInfo`

    """

    def __init__(
        self,
        name: str,
        type_: t.Optional[GenericMeta],
        func: t.Optional[Resolver] = None,
        *,
        options: t.Optional[t.Sequence[Option]] = None,
        description: t.Optional[str] = None,
    ):
        """
        :param str name: name of the field
        :param type_: type of the field or ``None``
        :param func: resolver, default resolver is used when omitted
        :param options: list of acceptable options
        :param description: description of the field
        """
        self.name = name
        self.type = type_
        self.func = func
        self.options = options or ()
        self.description = description

    def __repr__(self) -> str:
        return "{}({!r}, {!r}, {!r})".format(
            self.__class__.__name__, self.name, self.type, self.func
        )

    @cached_property
    def options_map(self) -> "OrderedDict[str, Option]":
        return OrderedDict((op.name, op) for op in self.options)

    def accept(self, visitor: "AbstractGraphVisitor") -> t.Any:
        return visitor.visit_field(self)


class Node(AbstractBase):
    """Collection of the fields, which describes some entity (object type)

    Example::

        graph = Graph([
            Node('Album', [
                Field('id', ID),
                Field('title', String),
                Field('tracks', Sequence[TypeRef['Track']], resolve_tracks),
            ]),
        ])

    """

    def __init__(
        self,
        name: str,
        fields: t.List[Field],
        *,
        description: t.Optional[str] = None,
    ):
        """
        :param name: name of the node
        :param fields: list of fields
        :param description: description of the node
        """
        self.name = name
        self.fields = fields
        self.description = description

    def __repr__(self) -> str:
        return "{}({!r}, {!r}, ...)".format(
            self.__class__.__name__, self.name, self.fields
        )

    @cached_property
    def fields_map(self) -> "OrderedDict[str, Field]":
        return OrderedDict((f.name, f) for f in self.fields)

    def accept(self, visitor: "AbstractGraphVisitor") -> t.Any:
        return visitor.visit_node(self)


class Root(Node):
    """Special root node, starting point of the query execution

    Example::

        graph = Graph([
            Node('Album', [...]),
            Root([
                Field('album', Optional[TypeRef['Album']], resolve_album,
                      options=[Option('id', ID)]),
            ]),
        ])

    """

    def __init__(self, fields: t.List[Field], name: str = QUERY_ROOT_NAME):
        super(Root, self).__init__(name, fields)

    def __repr__(self) -> str:
        return "{}({!r}, {!r})".format(
            self.__class__.__name__, self.name, self.fields
        )

    def accept(self, visitor: "AbstractGraphVisitor") -> t.Any:
        return visitor.visit_root(self)


def _type_refs(type_: t.Optional[GenericMeta]) -> t.Iterator[str]:
    if isinstance(type_, OptionalMeta):
        yield from _type_refs(type_.__type__)
    elif isinstance(type_, SequenceMeta):
        yield from _type_refs(type_.__item_type__)
    elif isinstance(type_, TypeRefMeta):
        yield type_.__type_name__


G = t.TypeVar("G", bound="Graph")


class Graph(AbstractBase):
    """Collection of nodes - definition of the graph

    Example::

        graph = Graph([
            Node('Album', [...]),
            Node('Track', [...]),
            Root([...]),
        ])

    """

    def __init__(self, items: t.List[Node]):
        """
        :param items: list of nodes, fields of all root nodes are merged
        """
        self.items = items
        self._check_refs()

    def __repr__(self) -> str:
        return "{}({!r})".format(self.__class__.__name__, self.items)

    def _check_refs(self) -> None:
        for node in self.items:
            for field in node.fields:
                for ref in _type_refs(field.type):
                    if ref not in self.nodes_map:
                        raise ValueError(
                            'Field "{}.{}" refers to undefined node "{}"'.format(
                                node.name, field.name, ref
                            )
                        )

    def iter_root(self) -> t.Iterator[Field]:
        """Iterate over nodes, and yield fields from all root nodes."""
        for node in self.items:
            if isinstance(node, Root):
                for field in node.fields:
                    yield field

    def iter_nodes(self) -> t.Iterator[Node]:
        for node in self.items:
            if not isinstance(node, Root):
                yield node

    @cached_property
    def root(self) -> Root:
        names = {n.name for n in self.items if isinstance(n, Root)}
        name = names.pop() if len(names) == 1 else QUERY_ROOT_NAME
        return Root(list(self.iter_root()), name=name)

    @cached_property
    def nodes(self) -> t.List[Node]:
        return list(self.iter_nodes())

    @cached_property
    def nodes_map(self) -> "OrderedDict[str, Node]":
        return OrderedDict((n.name, n) for n in self.iter_nodes())

    def accept(self, visitor: "AbstractGraphVisitor") -> t.Any:
        return visitor.visit_graph(self)

    @classmethod
    def from_graph(cls: t.Type[G], other: G, root: Root) -> G:
        """Create graph from other graph, with new root node.
        Useful for creating mutation graph from query graph.

        Example:
            MUTATION_GRAPH = Graph.from_graph(
                QUERY_GRAPH, Root([...], name='Mutation'),
            )
        """
        return cls(other.nodes + [root])


class AbstractGraphVisitor(ABC):
    @abstractmethod
    def visit(self, obj: t.Any) -> t.Any:
        pass

    @abstractmethod
    def visit_option(self, obj: Option) -> t.Any:
        pass

    @abstractmethod
    def visit_field(self, obj: Field) -> t.Any:
        pass

    @abstractmethod
    def visit_node(self, obj: Node) -> t.Any:
        pass

    @abstractmethod
    def visit_root(self, obj: Root) -> t.Any:
        pass

    @abstractmethod
    def visit_graph(self, obj: Graph) -> t.Any:
        pass


class GraphTransformer(AbstractGraphVisitor):
    def visit(self, obj: t.Any) -> t.Any:
        return obj.accept(self)

    def visit_option(self, obj: Option) -> Option:
        return Option(
            obj.name, obj.type, default=obj.default, description=obj.description
        )

    def visit_field(self, obj: Field) -> Field:
        return Field(
            obj.name,
            obj.type,
            obj.func,
            options=[self.visit(op) for op in obj.options],
            description=obj.description,
        )

    def visit_node(self, obj: Node) -> Node:
        return Node(
            obj.name,
            [self.visit(f) for f in obj.fields],
            description=obj.description,
        )

    def visit_root(self, obj: Root) -> Root:
        return Root([self.visit(f) for f in obj.fields], name=obj.name)

    def visit_graph(self, obj: Graph) -> Graph:
        return Graph([self.visit(node) for node in obj.items])

    def transform_resolvers(
        self, resolvers: t.Mapping[t.Tuple[str, str], Resolver]
    ) -> t.Dict[t.Tuple[str, str], Resolver]:
        """Applied to resolvers which are given apart from the graph and
        keyed by ``(type name, field name)``"""
        return dict(resolvers)


def apply(graph: G, transformers: t.Sequence[GraphTransformer]) -> G:
    """Helper function to apply graph transformations

    Example:

    .. code-block:: python

        graph = nagare.graph.apply(graph, [GraphMetrics('music')])

    """
    return reduce(lambda g, tr: tr.visit(g), transformers, graph)
