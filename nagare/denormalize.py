"""
nagare.denormalize
~~~~~~~~~~~~~~~~~~

Transforms resolution result tree into the ``data`` and ``errors`` parts
of the response.

Null-bubbling: when non-nullable position resolves into ``null`` (failure,
explicit ``None`` or missing property), ``null`` propagates to the nearest
nullable ancestor, or to the ``data`` itself when there is no such
ancestor. Error is recorded at the original path anyway.
"""

import typing as t

from .error import FieldError, NullabilityViolation
from .result import Failure, ListValue, ObjectValue, Result, Success


class _Bubble(Exception):
    """Raised from non-nullable position with ``null`` value"""


class Denormalize:
    def __init__(self) -> None:
        self._errors: t.List[FieldError] = []

    @property
    def errors(self) -> t.List[FieldError]:
        return list(self._errors)

    def process(
        self, result: Result
    ) -> t.Tuple[t.Optional[t.Dict], t.List[FieldError]]:
        try:
            data = self.visit(result)
        except _Bubble:
            data = None
        return data, self.errors

    def _null(self, result: Result) -> None:
        if not result.nullable:
            raise _Bubble()
        return None

    def visit(self, result: Result) -> t.Any:
        if isinstance(result, Failure):
            self._errors.append(result.error)
            return self._null(result)

        assert isinstance(result, Success), type(result)
        value = result.value
        if value is None:
            if not result.nullable:
                name = result.path[-1] if result.path else "data"
                self._errors.append(
                    FieldError.from_exception(
                        NullabilityViolation(None, str(name)), result.path
                    )
                )
            return self._null(result)
        elif isinstance(value, ObjectValue):
            return self.visit_object(result, value)
        elif isinstance(value, ListValue):
            return self.visit_list(result, value)
        else:
            return value

    def visit_object(self, result: Result, value: ObjectValue) -> t.Any:
        data = {}
        bubbled = False
        # siblings are visited even after bubbling to collect their errors
        for key, item in value.items():
            try:
                data[key] = self.visit(item)
            except _Bubble:
                bubbled = True
        if bubbled:
            return self._null(result)
        return data

    def visit_list(self, result: Result, value: ListValue) -> t.Any:
        items = []
        bubbled = False
        for item in value:
            try:
                items.append(self.visit(item))
            except _Bubble:
                bubbled = True
        if bubbled:
            return self._null(result)
        return items


def assemble(
    result: Result,
) -> t.Tuple[t.Optional[t.Dict], t.List[FieldError]]:
    """Returns ``(data, errors)`` for the root result

    Example:

    .. code-block:: python

        root = await engine.execute(execution_context)
        data, errors = assemble(root)

    """
    return Denormalize().process(result)
