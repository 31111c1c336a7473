import time
import inspect

from functools import wraps
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from prometheus_client import Summary

from ..graph import Field, GraphTransformer, Node, Root


_METRIC = None


def _get_default_metric() -> Summary:
    global _METRIC
    if _METRIC is None:
        _METRIC = Summary(
            "graph_field_time",
            "Graph field time (seconds)",
            ["graph", "node", "field"],
        )
    return _METRIC


Observe = Callable[[float, Any], None]


class GraphMetrics(GraphTransformer):
    """Measures time spent in every resolver of the graph

    Fields resolved by the default resolver are not measured. Resolvers
    given to :py:class:`~nagare.schema.Schema` apart from the graph are
    measured too.

    .. code-block:: python

        graph = apply(graph, [GraphMetrics('music')])

    """

    def __init__(self, name: str, *, metric: Optional[Summary] = None):
        self._name = name
        self._metric = metric or _get_default_metric()
        self._node: Optional[Node] = None

    def get_labels(
        self, graph_name: str, node_name: str, field_name: str, ctx: Any
    ) -> List[str]:
        return [graph_name, node_name, field_name]

    def _observe(self, node_name: str, field_name: str) -> Observe:
        by_labels = {}

        def observe(start_time: float, ctx: Any) -> None:
            duration = time.perf_counter() - start_time
            labels = tuple(
                self.get_labels(self._name, node_name, field_name, ctx)
            )
            try:
                metric = by_labels[labels]
            except KeyError:
                metric = by_labels[labels] = self._metric.labels(*labels)
            metric.observe(duration)

        return observe

    def field_wrapper(self, observe: Observe, func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(parent, args, ctx, info):  # type: ignore
                start_time = time.perf_counter()
                try:
                    return await func(parent, args, ctx, info)
                finally:
                    observe(start_time, ctx)

            return async_wrapper

        @wraps(func)
        def wrapper(parent, args, ctx, info):  # type: ignore
            start_time = time.perf_counter()
            try:
                return func(parent, args, ctx, info)
            finally:
                observe(start_time, ctx)

        return wrapper

    def visit_node(self, obj: Node) -> Node:
        self._node = obj
        try:
            return super().visit_node(obj)
        finally:
            self._node = None

    def visit_root(self, obj: Root) -> Root:
        self._node = obj
        try:
            return super().visit_root(obj)
        finally:
            self._node = None

    def visit_field(self, obj: Field) -> Field:
        obj = super().visit_field(obj)
        if obj.func is None:
            return obj
        assert self._node is not None
        observe = self._observe(self._node.name, obj.name)
        obj.func = self.field_wrapper(observe, obj.func)
        return obj

    def transform_resolvers(
        self, resolvers: Mapping[Tuple[str, str], Callable]
    ) -> Dict[Tuple[str, str], Callable]:
        return {
            (node_name, field_name): self.field_wrapper(
                self._observe(node_name, field_name), func
            )
            for (node_name, field_name), func in resolvers.items()
        }
