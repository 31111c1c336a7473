"""
nagare.cache
~~~~~~~~~~~~

Fetch layer for resolvers which reach external resources. Concurrent
fetches of the same key share one outbound call, successful results are
kept in the store until they expire:

.. code-block:: python

    cache = DataSourceCache(InMemoryStore(), ttl=30)

    async def resolve_track(parent, args, ctx, info):
        key = fetch_key('GET', '/tracks', {'id': args['id']})
        return await ctx['cache'].fetch(key, lambda: load_track(args['id']))

"""

import abc
import json
import time
import asyncio
import hashlib
import heapq
import inspect
import logging

from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Tuple,
)

from prometheus_client import Counter

from nagare.error import FetchError
from nagare.utils import const


log = logging.getLogger(__name__)

FETCH_CACHE_HITS = Counter(
    name="nagare_fetch_cache_hits",
    documentation="Data source fetches served from the cache store",
    labelnames=["cache"],
)
FETCH_CACHE_MISSES = Counter(
    name="nagare_fetch_cache_misses",
    documentation="Data source fetches which performed outbound call",
    labelnames=["cache"],
)
FETCH_COALESCED = Counter(
    name="nagare_fetch_coalesced",
    documentation="Data source fetches attached to an in-flight fetch",
    labelnames=["cache"],
)

#: Returned by stores when key is absent or expired
MISS = const("MISS")

Clock = Callable[[], float]
FetchFn = Callable[[], Any]


class BaseStore(abc.ABC):
    @abc.abstractmethod
    async def get(self, key: str) -> Any:
        """Returns stored value or :py:const:`MISS`"""
        raise NotImplementedError()

    @abc.abstractmethod
    async def set(self, key: str, value: Any, ttl: float) -> None:
        raise NotImplementedError()

    @abc.abstractmethod
    async def delete(self, key: str) -> None:
        raise NotImplementedError()


class InMemoryStore(BaseStore):
    """Process-local store, expired entries are evicted on access and swept
    on every write"""

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._data: Dict[str, Tuple[Any, float]] = {}
        self._expiry: List[Tuple[float, str]] = []

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: str) -> bool:
        return self._get(key) is not MISS

    def _get(self, key: str) -> Any:
        try:
            value, expires_at = self._data[key]
        except KeyError:
            return MISS
        if expires_at <= self._clock():
            del self._data[key]
            return MISS
        return value

    def _sweep(self, now: float) -> None:
        while self._expiry and self._expiry[0][0] <= now:
            expires_at, key = heapq.heappop(self._expiry)
            entry = self._data.get(key)
            # key could be rewritten with a later expiry
            if entry is not None and entry[1] == expires_at:
                del self._data[key]

    async def get(self, key: str) -> Any:
        return self._get(key)

    async def set(self, key: str, value: Any, ttl: float) -> None:
        now = self._clock()
        self._sweep(now)
        expires_at = now + ttl
        self._data[key] = (value, expires_at)
        heapq.heappush(self._expiry, (expires_at, key))

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


@dataclass
class CacheMetrics:
    name: str
    hits_counter: Counter = FETCH_CACHE_HITS
    misses_counter: Counter = FETCH_CACHE_MISSES
    coalesced_counter: Counter = FETCH_COALESCED


def _normalize(params: Optional[Mapping[str, Any]]) -> str:
    return json.dumps(
        params or {}, sort_keys=True, separators=(",", ":"), default=str
    )


def fetch_key(
    method: str,
    resource: str,
    params: Optional[Mapping[str, Any]] = None,
) -> str:
    """Builds deterministic key of the logical fetch

    Parameters order doesn't matter:

    .. code-block:: python

        assert (
            fetch_key('GET', '/tracks', {'a': 1, 'b': 2})
            == fetch_key('get', '/tracks', {'b': 2, 'a': 1})
        )

    """
    hasher = hashlib.sha1()
    hasher.update(method.upper().encode())
    hasher.update(b"\x00")
    hasher.update(resource.encode())
    hasher.update(b"\x00")
    hasher.update(_normalize(params).encode())
    return hasher.hexdigest()


class DataSourceCache:
    """Deduplicating TTL cache of outbound fetches

    :param store: where to keep fetched values, :py:class:`InMemoryStore`
        by default
    :param ttl: seconds to keep fetched values, ``0`` disables caching and
        leaves only deduplication of in-flight fetches
    :param name: name of the cache, used as a metrics label
    :param metrics: optional :py:class:`CacheMetrics`
    :param clock: time source of the default store
    """

    def __init__(
        self,
        store: Optional[BaseStore] = None,
        ttl: float = 60,
        name: str = "default",
        metrics: Optional[CacheMetrics] = None,
        clock: Clock = time.monotonic,
    ) -> None:
        if store is None:
            store = InMemoryStore(clock)
        self.store = store
        self.ttl = ttl
        self.name = name
        self.metrics = metrics
        self._in_flight: Dict[str, asyncio.Task] = {}

    def __repr__(self) -> str:
        return "<{} {!r} ttl={}>".format(
            self.__class__.__name__, self.name, self.ttl
        )

    def _track(self, counter_name: str) -> None:
        if not self.metrics:
            return
        counter = getattr(self.metrics, counter_name)
        counter.labels(self.metrics.name).inc()

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def fetch(
        self, key: str, fetch_fn: FetchFn, ttl: Optional[float] = None
    ) -> Any:
        """Returns value for the ``key``, calling ``fetch_fn`` only when
        the value is not stored and there is no such fetch in flight

        :param key: key of the logical fetch, see :py:func:`fetch_key`
        :param fetch_fn: callable without arguments, performs outbound call
        :param ttl: overrides default ttl of the cache
        :raises FetchError: when outbound call failed
        """
        task = self._in_flight.get(key)
        if task is not None:
            self._track("coalesced_counter")
            return await asyncio.shield(task)

        if ttl is None:
            ttl = self.ttl
        # installed before any suspension point
        task = asyncio.get_running_loop().create_task(
            self._load(key, fetch_fn, ttl)
        )
        self._in_flight[key] = task
        task.add_done_callback(lambda t: self._done(key, t))
        return await asyncio.shield(task)

    def _done(self, key: str, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled():
            # every waiter might be gone already
            task.exception()

    async def _load(self, key: str, fetch_fn: FetchFn, ttl: float) -> Any:
        if ttl > 0:
            try:
                value = await self.store.get(key)
            except Exception:
                log.warning("Cache %r failed to read %s", self.name, key,
                            exc_info=True)
                value = MISS
            if value is not MISS:
                self._track("hits_counter")
                return value

        self._track("misses_counter")
        try:
            value = fetch_fn()
            if inspect.isawaitable(value):
                value = await value
        except FetchError as exc:
            if exc.key is None:
                exc.key = key
            log.debug("Fetch %s failed: %s", key, exc.message)
            raise
        except Exception as exc:
            log.debug("Fetch %s failed", key, exc_info=True)
            raise FetchError(
                str(exc) or type(exc).__name__, key=key
            ) from exc

        # detached by invalidation, result is stale
        if ttl > 0 and self._in_flight.get(key) is asyncio.current_task():
            try:
                await self.store.set(key, value, ttl)
            except Exception:
                log.warning("Cache %r failed to store %s", self.name, key,
                            exc_info=True)
        return value

    async def invalidate(self, key: str) -> None:
        """Removes stored value and detaches in-flight fetch of the
        ``key``, next fetch will perform a new outbound call"""
        self._in_flight.pop(key, None)
        await self.store.delete(key)
