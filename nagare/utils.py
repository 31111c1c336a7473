import sys

from typing import Any, Generic, Mapping, NewType, NoReturn, TypeVar, cast


K = TypeVar("K")
V = TypeVar("V")

Const = NewType("Const", object)


def const(name: str) -> Const:
    """Creates a unique sentinel, which is also nice to see in reprs"""
    t = type(name, (object,), {})
    t.__module__ = sys._getframe(1).f_globals.get("__name__", "__main__")
    return cast(Const, t)


class ImmutableDict(dict, Generic[K, V]):
    _hash = None

    def __hash__(self) -> int:  # type: ignore
        if self._hash is None:
            self._hash = hash(frozenset(self.items()))
        return self._hash

    def _immutable(self, *args: Any, **kwargs: Any) -> NoReturn:
        raise TypeError(
            "{} object is immutable".format(self.__class__.__name__)
        )

    __delitem__ = __setitem__ = _immutable  # type: ignore
    clear = pop = popitem = setdefault = update = _immutable  # type: ignore
    __ior__ = _immutable  # type: ignore


def _freeze_value(value: Any) -> Any:
    if isinstance(value, ImmutableDict):
        return value
    if isinstance(value, dict):
        return freeze(value)
    if isinstance(value, (list, tuple)):
        return tuple(_freeze_value(i) for i in value)
    return value


def freeze(data: Mapping[K, V]) -> ImmutableDict[K, V]:
    """Deeply converts nested dicts into :py:class:`ImmutableDict` and
    lists into tuples"""
    return ImmutableDict((k, _freeze_value(v)) for k, v in data.items())
