"""
nagare.types
~~~~~~~~~~~~

Declared types of the graph fields. Every position is non-nullable unless
it is wrapped into :py:class:`Optional`:

.. code-block:: python

    String                          # String!
    Optional[String]                # String
    Sequence[TypeRef['Track']]      # [Track!]!
    Optional[Sequence[Optional[Integer]]]   # [Int]

"""

import typing as t

from abc import abstractmethod, ABC


class GenericMeta(type):
    def __repr__(cls) -> str:
        return cls.__name__

    def __eq__(cls, other: t.Any) -> bool:
        return (
            cls.__class__ is other.__class__ and cls.__dict__ == other.__dict__
        )

    def __ne__(cls, other: t.Any) -> bool:
        return not (cls == other)

    def __hash__(self) -> int:
        return hash(self.__name__)

    def accept(cls, visitor: "AbstractTypeVisitor") -> t.Any:
        raise NotImplementedError(type(cls))


class AnyMeta(GenericMeta):
    def accept(cls, visitor: "AbstractTypeVisitor") -> t.Any:
        return visitor.visit_any(cls)


class Any(metaclass=AnyMeta):
    pass


class BooleanMeta(GenericMeta):
    def accept(cls, visitor: "AbstractTypeVisitor") -> t.Any:
        return visitor.visit_boolean(cls)


class Boolean(metaclass=BooleanMeta):
    pass


class StringMeta(GenericMeta):
    def accept(cls, visitor: "AbstractTypeVisitor") -> t.Any:
        return visitor.visit_string(cls)


class String(metaclass=StringMeta):
    pass


class IDMeta(GenericMeta):
    def accept(cls, visitor: "AbstractTypeVisitor") -> t.Any:
        return visitor.visit_id(cls)


class ID(metaclass=IDMeta):
    pass


class IntegerMeta(GenericMeta):
    def accept(cls, visitor: "AbstractTypeVisitor") -> t.Any:
        return visitor.visit_integer(cls)


class Integer(metaclass=IntegerMeta):
    pass


class FloatMeta(GenericMeta):
    def accept(cls, visitor: "AbstractTypeVisitor") -> t.Any:
        return visitor.visit_float(cls)


class Float(metaclass=FloatMeta):
    pass


TM = t.TypeVar("TM", bound="TypingMeta")


class TypingMeta(GenericMeta, type):
    __final__ = False

    def __cls_init__(cls: TM, parameters: t.Any) -> None:
        raise NotImplementedError(type(cls))

    def __cls_repr__(cls: TM) -> str:
        raise NotImplementedError(type(cls))

    def __getitem__(cls: TM, parameters: t.Any) -> TM:
        if cls.__final__:
            raise TypeError("Cannot substitute parameters in {!r}".format(cls))
        type_ = cls.__class__(cls.__name__, cls.__bases__, dict(cls.__dict__))
        type_.__cls_init__(parameters)
        type_.__final__ = True
        return type_

    def __repr__(self) -> str:
        if self.__final__:
            return self.__cls_repr__()
        else:
            return super(TypingMeta, self).__repr__()

    def __hash__(self) -> int:
        return hash(self.__name__)


class OptionalMeta(TypingMeta):
    __type__: GenericMeta

    def __cls_init__(cls, type_: GenericMeta) -> None:
        if isinstance(type_, OptionalMeta):
            raise TypeError("Optional[Optional[...]] is not allowed")
        cls.__type__: GenericMeta = _maybe_typeref(type_)

    def __cls_repr__(self) -> str:
        return "{}[{!r}]".format(self.__name__, self.__type__)

    def accept(cls, visitor: "AbstractTypeVisitor") -> t.Any:
        return visitor.visit_optional(cls)


class Optional(metaclass=OptionalMeta):
    pass


class SequenceMeta(TypingMeta):
    __item_type__: GenericMeta

    def __cls_init__(cls, item_type: GenericMeta) -> None:
        cls.__item_type__: GenericMeta = _maybe_typeref(item_type)

    def __cls_repr__(self) -> str:
        return "{}[{!r}]".format(self.__name__, self.__item_type__)

    def accept(cls, visitor: "AbstractTypeVisitor") -> t.Any:
        return visitor.visit_sequence(cls)


class Sequence(metaclass=SequenceMeta):
    pass


class TypeRefMeta(TypingMeta):
    __type_name__: str

    def __cls_init__(cls, *args: str) -> None:
        assert len(args) == 1, f"{cls.__name__} takes exactly one argument"

        cls.__type_name__ = args[0]

    def __cls_repr__(self) -> str:
        return "{}[{!r}]".format(self.__name__, self.__type_name__)

    def accept(cls, visitor: "AbstractTypeVisitor") -> t.Any:
        return visitor.visit_typeref(cls)


class TypeRef(metaclass=TypeRefMeta): ...


def _maybe_typeref(typ: t.Union[str, GenericMeta]) -> GenericMeta:
    return TypeRef[typ] if isinstance(typ, str) else typ


class AbstractTypeVisitor(ABC):
    def visit(self, obj: GenericMeta) -> t.Any:
        return obj.accept(self)

    @abstractmethod
    def visit_any(self, obj: AnyMeta) -> t.Any:
        pass

    @abstractmethod
    def visit_boolean(self, obj: BooleanMeta) -> t.Any:
        pass

    @abstractmethod
    def visit_string(self, obj: StringMeta) -> t.Any:
        pass

    @abstractmethod
    def visit_id(self, obj: IDMeta) -> t.Any:
        pass

    @abstractmethod
    def visit_integer(self, obj: IntegerMeta) -> t.Any:
        pass

    @abstractmethod
    def visit_float(self, obj: FloatMeta) -> t.Any:
        pass

    @abstractmethod
    def visit_typeref(self, obj: TypeRefMeta) -> t.Any:
        pass

    @abstractmethod
    def visit_optional(self, obj: OptionalMeta) -> t.Any:
        pass

    @abstractmethod
    def visit_sequence(self, obj: SequenceMeta) -> t.Any:
        pass


def is_nullable(type_: t.Optional[GenericMeta]) -> bool:
    """Fields without declared type are treated as nullable"""
    return type_ is None or isinstance(type_, OptionalMeta)


def unwrap_optional(type_: GenericMeta) -> GenericMeta:
    if isinstance(type_, OptionalMeta):
        return type_.__type__
    return type_


class LeafCoercer(AbstractTypeVisitor):
    """Checks that a resolved value fits into the declared scalar type and
    returns the value which should be emitted in the response.

    Raises :py:class:`TypeError` when the value does not fit.
    """

    def __init__(self, value: t.Any) -> None:
        self._value = value

    def _fail(self, obj: GenericMeta) -> t.NoReturn:
        raise TypeError(
            "Expected value of type {!r}, got {!r}".format(obj, self._value)
        )

    def visit_any(self, obj: AnyMeta) -> t.Any:
        return self._value

    def visit_boolean(self, obj: BooleanMeta) -> bool:
        if isinstance(self._value, bool):
            return self._value
        self._fail(obj)

    def visit_string(self, obj: StringMeta) -> str:
        if isinstance(self._value, str):
            return self._value
        self._fail(obj)

    def visit_id(self, obj: IDMeta) -> str:
        if isinstance(self._value, str):
            return self._value
        if isinstance(self._value, int) and not isinstance(self._value, bool):
            return str(self._value)
        self._fail(obj)

    def visit_integer(self, obj: IntegerMeta) -> int:
        if isinstance(self._value, int) and not isinstance(self._value, bool):
            return self._value
        self._fail(obj)

    def visit_float(self, obj: FloatMeta) -> float:
        if isinstance(self._value, (int, float)) and not isinstance(
            self._value, bool
        ):
            return float(self._value)
        self._fail(obj)

    def visit_typeref(self, obj: TypeRefMeta) -> t.NoReturn:
        raise TypeError("{!r} is not a leaf type".format(obj))

    def visit_optional(self, obj: OptionalMeta) -> t.Any:
        return self.visit(obj.__type__)

    def visit_sequence(self, obj: SequenceMeta) -> t.NoReturn:
        raise TypeError("{!r} is not a leaf type".format(obj))


def coerce_leaf(type_: t.Optional[GenericMeta], value: t.Any) -> t.Any:
    if type_ is None:
        return value
    return LeafCoercer(value).visit(type_)
