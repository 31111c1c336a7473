"""
nagare.sources.http
~~~~~~~~~~~~~~~~~~~

JSON over HTTP data source, every outbound call goes through the
:py:class:`~nagare.cache.DataSourceCache`:

.. code-block:: python

    tracks = HTTPSource(session, cache, base_url='http://tracks.local')

    async def resolve_track(parent, args, ctx, info):
        return await ctx['tracks'].get('/tracks/{}'.format(args['id']))

"""

import asyncio
import logging

from typing import Any, Mapping, Optional

import aiohttp

from ..cache import DataSourceCache, fetch_key
from ..error import FetchError


log = logging.getLogger(__name__)


class HTTPSource:
    """
    :param session: :py:class:`aiohttp.ClientSession`, owned by the caller
    :param cache: cache used to deduplicate and to store responses
    :param base_url: prepended to every requested path
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        cache: DataSourceCache,
        base_url: str = "",
    ) -> None:
        self.session = session
        self.cache = cache
        self.base_url = base_url.rstrip("/")

    def url(self, path: str) -> str:
        if not self.base_url:
            return path
        return "{}/{}".format(self.base_url, path.lstrip("/"))

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        log.debug("%s %s params=%r", method, url, params)
        try:
            async with self.session.request(
                method, url, params=params, json=json
            ) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(
                        "{} {} failed with status {}".format(
                            method, url, response.status
                        ),
                        status=response.status,
                        url=url,
                    )
                return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise FetchError(
                "{} {} failed: {}".format(method, url, e), url=url
            ) from e
        except asyncio.TimeoutError as e:
            raise FetchError(
                "{} {} timed out".format(method, url), url=url
            ) from e

    async def get(
        self, path: str, params: Optional[Mapping[str, Any]] = None
    ) -> Any:
        """Cached GET request, returns decoded JSON body"""
        url = self.url(path)
        key = fetch_key("GET", url, params)
        return await self.cache.fetch(
            key, lambda: self._request("GET", url, params=params)
        )

    async def post(
        self,
        path: str,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """POST request, identical requests in flight are deduplicated, but
        responses are never cached"""
        url = self.url(path)
        key = fetch_key(
            "POST", url, {"params": params or {}, "json": json}
        )
        return await self.cache.fetch(
            key,
            lambda: self._request("POST", url, params=params, json=json),
            ttl=0,
        )
