"""
nagare.result
~~~~~~~~~~~~~

Engine doesn't build response directly, it produces a tree of tagged
resolution results instead, one per selection node:

  - :py:class:`Success` holds a leaf value, ``None``, an
    :py:class:`ObjectValue` or a :py:class:`ListValue`
  - :py:class:`Failure` holds a :py:class:`~nagare.error.FieldError`

Every node also knows its path and whether its position is nullable, this
is all :py:mod:`nagare.denormalize` needs to apply null-bubbling and to
collect errors.
"""

import typing as t

from collections import OrderedDict

from .error import FieldError, Path


class Success:
    __slots__ = ("value", "path", "nullable")

    def __init__(self, value: t.Any, path: Path, nullable: bool) -> None:
        self.value = value
        self.path = path
        self.nullable = nullable

    def __repr__(self) -> str:
        return "<Success{!r} {!r}>".format(list(self.path), self.value)


class Failure:
    __slots__ = ("error", "path", "nullable")

    def __init__(self, error: FieldError, path: Path, nullable: bool) -> None:
        self.error = error
        self.path = path
        self.nullable = nullable

    def __repr__(self) -> str:
        return "<Failure{!r} {!r}>".format(list(self.path), self.error.message)


Result = t.Union[Success, Failure]


class ObjectValue(OrderedDict):
    """Resolved selection set: result key -> :py:data:`Result`, in the
    order of the selection set"""

    def __repr__(self) -> str:
        return "ObjectValue({!r})".format(dict(self))


class ListValue(tuple):
    """Resolved list, items are :py:data:`Result` in the input order"""

    def __repr__(self) -> str:
        return "ListValue({!r})".format(list(self))
