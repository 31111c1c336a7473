"""
nagare.readers.graphql
~~~~~~~~~~~~~~~~~~~~~~

Support for queries encoded using GraphQL syntax.

Fragments are inlined into the selection sets where they are spread,
``@skip`` and ``@include`` directives are applied while reading, so the
resulting :py:class:`~nagare.query.Node` contains only fields which
should be resolved.

"""

from typing import Any, Dict, Iterator, Optional, Set, Union

from graphql.language import ast
from graphql.language.parser import parse
from graphql.utilities import value_from_ast_untyped

from ..operation import Operation, OperationType
from ..query import Field, Link, merge, Node


FieldOrLink = Union[Field, Link]


def parse_query(src: str) -> ast.DocumentNode:
    """Parses a query into GraphQL ast

    :param str src: GraphQL query string
    :return: :py:class:`ast.DocumentNode`
    """
    return parse(src)


class Document:
    """Operations and fragments of the parsed document, indexed by name"""

    def __init__(self, doc: ast.DocumentNode) -> None:
        self.operations: Dict[Optional[str], ast.OperationDefinitionNode] = {}
        self.fragments: Dict[str, ast.FragmentDefinitionNode] = {}
        for definition in doc.definitions:
            if isinstance(definition, ast.OperationDefinitionNode):
                name = definition.name.value if definition.name else None
                if name in self.operations:
                    raise TypeError(
                        "Duplicate operation definition: {!r}".format(name)
                    )
                self.operations[name] = definition
            elif isinstance(definition, ast.FragmentDefinitionNode):
                name = definition.name.value
                if name in self.fragments:
                    raise TypeError(
                        'Duplicated fragment name: "{}"'.format(name)
                    )
                self.fragments[name] = definition
            else:
                raise TypeError(
                    "Unsupported definition: {}".format(definition.kind)
                )

    def operation(
        self, name: Optional[str] = None
    ) -> ast.OperationDefinitionNode:
        if not self.operations:
            raise TypeError("No operations in the document")
        if name is not None:
            try:
                return self.operations[name]
            except KeyError:
                raise TypeError("Undefined operation name: {!r}".format(name))
        if len(self.operations) > 1:
            raise TypeError(
                "Document should contain exactly one operation "
                "when no operation name was provided"
            )
        return next(iter(self.operations.values()))


class SelectionReader:
    """Reads selection sets of the operation into query nodes"""

    def __init__(
        self,
        document: Document,
        variables: Optional[Dict] = None,
    ) -> None:
        self.document = document
        self.variables = variables or {}
        self.query_name = "<unnamed>"
        self.query_variables: Dict[str, Any] = {}
        self._pending_fragments: Set[str] = set()

    def read(self, op: ast.OperationDefinitionNode) -> Node:
        self.query_name = op.name.value if op.name else "<unnamed>"
        for var_defn in op.variable_definitions or ():
            self.query_variables[var_defn.variable.name.value] = (
                self._variable_value(var_defn)
            )
        ordered = op.operation is ast.OperationType.MUTATION
        return self._node(op.selection_set, ordered)

    def _variable_value(self, var_defn: ast.VariableDefinitionNode) -> Any:
        name = var_defn.variable.name.value
        if name in self.variables:
            return self.variables[name]
        if var_defn.default_value is not None:
            return self.value(var_defn.default_value)
        if isinstance(var_defn.type, ast.NonNullTypeNode):
            raise TypeError(
                'Variable "{}" is not provided for query {}'.format(
                    name, self.query_name
                )
            )
        return None

    def lookup_variable(self, name: str) -> Any:
        try:
            return self.query_variables[name]
        except KeyError:
            raise TypeError(
                "Variable ${} is not defined in query {}".format(
                    name, self.query_name
                )
            )

    def value(self, obj: ast.ValueNode) -> Any:
        if isinstance(obj, ast.VariableNode):
            return self.lookup_variable(obj.name.value)
        if isinstance(obj, ast.ListValueNode):
            return [self.value(i) for i in obj.values]
        if isinstance(obj, ast.ObjectValueNode):
            return {f.name.value: self.value(f.value) for f in obj.fields}
        return value_from_ast_untyped(obj)

    def _condition(self, obj: ast.SelectionNode, name: str) -> Optional[bool]:
        for directive in obj.directives or ():
            if directive.name.value != name:
                continue
            args = {a.name.value: a.value for a in directive.arguments}
            if set(args) != {"if"}:
                raise TypeError(
                    '@{} directive accepts only "if" argument, '
                    "{} provided".format(name, sorted(args) or "nothing")
                )
            return bool(self.value(args["if"]))
        return None

    def _skipped(self, obj: ast.SelectionNode) -> bool:
        if self._condition(obj, "skip"):
            return True
        return self._condition(obj, "include") is False

    def _node(
        self, selection_set: ast.SelectionSetNode, ordered: bool = False
    ) -> Node:
        return merge([Node(list(self._selections(selection_set)), ordered)])

    def _selections(
        self, selection_set: ast.SelectionSetNode
    ) -> Iterator[FieldOrLink]:
        for obj in selection_set.selections:
            if self._skipped(obj):
                continue
            if isinstance(obj, ast.FieldNode):
                yield self._field(obj)
            elif isinstance(obj, ast.FragmentSpreadNode):
                yield from self._fragment_spread(obj)
            elif isinstance(obj, ast.InlineFragmentNode):
                yield from self._selections(obj.selection_set)
            else:
                raise TypeError("Unsupported selection: {}".format(obj.kind))

    def _field(self, obj: ast.FieldNode) -> FieldOrLink:
        options = None
        if obj.arguments:
            options = {a.name.value: self.value(a.value) for a in obj.arguments}
        alias = obj.alias.value if obj.alias is not None else None
        if obj.selection_set is None:
            return Field(obj.name.value, options=options, alias=alias)
        return Link(
            obj.name.value,
            self._node(obj.selection_set),
            options=options,
            alias=alias,
        )

    def _fragment_spread(
        self, obj: ast.FragmentSpreadNode
    ) -> Iterator[FieldOrLink]:
        name = obj.name.value
        try:
            fragment = self.document.fragments[name]
        except KeyError:
            raise TypeError('Undefined fragment: "{}"'.format(name))
        if name in self._pending_fragments:
            raise TypeError('Cyclic fragment usage: "{}"'.format(name))
        self._pending_fragments.add(name)
        try:
            yield from self._selections(fragment.selection_set)
        finally:
            self._pending_fragments.discard(name)


def get_operation(
    doc: ast.DocumentNode, operation_name: Optional[str] = None
) -> ast.OperationDefinitionNode:
    return Document(doc).operation(operation_name)


def read(
    src: str,
    variables: Optional[Dict] = None,
    operation_name: Optional[str] = None,
) -> Node:
    """Reads a query from the GraphQL document

    Example:

    .. code-block:: python

        query = read('{ foo bar }')
        result = await engine.execute(create_execution_context(query, ...))

    :param str src: GraphQL query
    :param dict variables: query variables
    :param str operation_name: Name of the operation to execute
    :return: :py:class:`nagare.query.Node`, ready to execute query object
    """
    document = Document(parse_query(src))
    op = document.operation(operation_name)
    if op.operation is not ast.OperationType.QUERY:
        raise TypeError(
            'Only "query" operations are supported, '
            '"{}" operation was provided'.format(op.operation.value)
        )
    return SelectionReader(document, variables).read(op)


def read_operation(
    src: Union[str, ast.DocumentNode],
    variables: Optional[Dict] = None,
    operation_name: Optional[str] = None,
) -> Operation:
    """Reads an operation from the GraphQL document

    Example:

    .. code-block:: python

        op = read_operation('{ foo bar }')
        if op.type is OperationType.MUTATION:
            ...

    :return: :py:class:`Operation`
    """
    if isinstance(src, str):
        src = parse_query(src)
    elif not isinstance(src, ast.DocumentNode):
        raise TypeError("Unsupported type: {}".format(type(src)))

    document = Document(src)
    op = document.operation(operation_name)
    try:
        type_ = OperationType(op.operation)
    except ValueError:
        type_ = None
    if type_ is None or type_ is OperationType.SUBSCRIPTION:
        raise TypeError(
            "Unsupported operation type: {}".format(op.operation.value)
        )
    query = SelectionReader(document, variables).read(op)
    name = op.name.value if op.name else None
    return Operation(type_, query, name)
