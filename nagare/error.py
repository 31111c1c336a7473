"""
nagare.error
~~~~~~~~~~~~

Errors which may end up in the ``errors`` list of the response.

Field-level errors are never raised past the engine: they are captured into
:py:class:`FieldError` records and the field's value becomes ``null``.
"""

import dataclasses

from typing import Any, Dict, Optional, Tuple, Union


__all__ = [
    "GraphQLError",
    "ResolutionError",
    "FetchError",
    "NullabilityViolation",
    "ExecutionTimeout",
    "FieldError",
    "Path",
]


Path = Tuple[Union[str, int], ...]


class GraphQLError(Exception):
    code = "GRAPHQL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ResolutionError(GraphQLError):
    """Resolver raised or returned a value which doesn't fit declared type"""

    code = "RESOLUTION_ERROR"


class FetchError(GraphQLError):
    """Outbound call made through the data source cache failed"""

    code = "FETCH_ERROR"

    def __init__(
        self,
        message: str,
        *,
        key: Optional[str] = None,
        status: Optional[int] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.key = key
        self.status = status
        self.url = url


class NullabilityViolation(GraphQLError):
    code = "NULLABILITY_VIOLATION"

    def __init__(self, parent_type: Optional[str], field_name: str) -> None:
        if parent_type is not None:
            field_name = "{}.{}".format(parent_type, field_name)
        super().__init__(
            "Cannot return null for non-nullable field {}".format(field_name)
        )


class ExecutionTimeout(GraphQLError, TimeoutError):
    code = "TIMEOUT"

    def __init__(self, message: str = "Execution timed out") -> None:
        super().__init__(message)


@dataclasses.dataclass(frozen=True)
class FieldError:
    message: str
    path: Path
    #: qualified name of the resolver which failed, "default" for fields
    #: resolved by the default resolver
    resolver: Optional[str] = None
    error: Optional[BaseException] = dataclasses.field(
        default=None, compare=False, repr=False
    )

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        path: Path,
        resolver: Optional[str] = None,
    ) -> "FieldError":
        if isinstance(exc, GraphQLError):
            message = exc.message
        else:
            message = str(exc) or type(exc).__name__
        return cls(message, tuple(path), resolver, exc)

    @property
    def extensions(self) -> Dict[str, Any]:
        code = getattr(self.error, "code", ResolutionError.code)
        return {"code": code}
