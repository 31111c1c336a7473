from typing import Iterator

from prometheus_client import Summary

from nagare.context import ExecutionContext
from nagare.extensions.base_extension import Extension
from nagare.telemetry.prometheus import GraphMetrics


class PrometheusMetrics(Extension):
    """Adds :py:class:`~nagare.telemetry.prometheus.GraphMetrics` to the
    graph transformers of the schema"""

    def __init__(
        self,
        name: str,
        *,
        metric: Summary | None = None,
        transformer_cls: type[GraphMetrics] = GraphMetrics,
    ):
        self._name = name
        self._metric = metric
        self._transformer = transformer_cls(self._name, metric=self._metric)

    def on_init(self, execution_context: ExecutionContext) -> Iterator[None]:
        execution_context.transformers = execution_context.transformers + (
            self._transformer,
        )
        yield
