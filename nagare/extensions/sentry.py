import hashlib

from typing import Iterator

from sentry_sdk import get_current_span, start_span
from sentry_sdk.tracing import Span

from nagare.context import ExecutionContext
from nagare.extensions.base_extension import Extension


def _start_child(op: str, description: str) -> Span:
    parent = get_current_span()
    if parent is not None:
        return parent.start_child(op=op, description=description)
    return start_span(op=op, description=description)


class SentryTracing(Extension):
    """Wraps every operation into the ``gql`` span, with ``parsing`` and
    ``execution`` child spans"""

    def get_resource_name(self, execution_context: ExecutionContext) -> str:
        query_hash = self._hash_query(execution_context.query_src)

        if execution_context.operation_name:
            return f"{execution_context.operation_name}:{query_hash}"

        return query_hash

    def _hash_query(self, query: str) -> str:
        return hashlib.md5(query.encode("utf-8")).hexdigest()

    def on_operation(
        self, execution_context: ExecutionContext
    ) -> Iterator[None]:
        name = execution_context.operation_name or "Anonymous Query"

        with _start_child("gql", name) as gql_span:
            gql_span.set_tag(
                "graphql.resource_name",
                self.get_resource_name(execution_context),
            )
            gql_span.set_data("graphql.query", execution_context.query_src)

            yield

            # operation type is known only after parsing
            gql_span.set_tag(
                "graphql.operation_type",
                execution_context.operation_type_name,
            )
            if execution_context.errors:
                gql_span.set_data(
                    "graphql.errors", len(execution_context.errors)
                )

    def on_parse(self, execution_context: ExecutionContext) -> Iterator[None]:
        with _start_child("parsing", "Parsing"):
            yield

    def on_execute(self, execution_context: ExecutionContext) -> Iterator[None]:
        with _start_child("execution", "Execution"):
            yield
