from itertools import zip_longest
from unittest.mock import patch as _patch, Mock as _Mock, MagicMock as _MagicMock
from unittest.mock import call as _call, ANY as _ANY

from nagare.context import ResolutionContext, create_execution_context
from nagare.denormalize import assemble
from nagare.engine import Engine
from nagare.query import Node
from nagare.readers.graphql import read
from nagare.registry import ResolverRegistry

patch = _patch
Mock = _Mock
MagicMock = _MagicMock
call = _call
ANY = _ANY


_missing = type('<missing>', (object,), {})


def result_match(result, value, path=None):
    path = [] if path is None else path
    if isinstance(value, dict):
        if not isinstance(result, dict) or set(result) != set(value):
            return False, path, result, value
        for k, v in value.items():
            ok, sp, sr, sv = result_match(result[k], v, path + [k])
            if not ok:
                return ok, sp, sr, sv
    elif isinstance(value, (list, tuple)):
        pairs = zip_longest(result, value, fillvalue=_missing)
        for i, (v1, v2) in enumerate(pairs):
            ok, sp, sr, sv = result_match(v1, v2, path + [i])
            if not ok:
                return ok, sp, sr, sv
    elif result != value:
        return False, path, result, value

    return True, None, None, None


def check_result(result, value):
    ok, path, subres, subval = result_match(result, value)
    if not ok:
        path_str = 'result' + ''.join('[{!r}]'.format(v) for v in path)
        msg = ('Result mismatch, first different element '
               'path: {}, value: {!r}, expected: {!r}'
               .format(path_str, subres, subval))
        raise AssertionError(msg)


async def execute(graph, query, *, variables=None, context=None,
                  root_value=None, resolvers=None, engine=None):
    """Executes query and returns ``(data, errors)``"""
    if not isinstance(query, Node):
        query = read(query, variables)
    execution_context = create_execution_context(
        query,
        variables=variables,
        query_graph=graph,
        root_value=root_value,
        context=context or ResolutionContext(),
    )
    engine = engine or Engine()
    result = await engine.execute(
        execution_context, ResolverRegistry(graph, resolvers),
    )
    return assemble(result)
