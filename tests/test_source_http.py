import asyncio

from contextlib import asynccontextmanager

import aiohttp
import pytest

from aiohttp import web
from aiohttp.test_utils import TestServer

from nagare.cache import DataSourceCache, fetch_key
from nagare.error import FetchError
from nagare.sources.http import HTTPSource


@asynccontextmanager
async def tracks_server():
    hits = []

    async def get_track(request):
        hits.append(("GET", request.match_info["id"], dict(request.query)))
        await asyncio.sleep(0.01)
        return web.json_response(
            {"id": int(request.match_info["id"]), "title": "Track"}
        )

    async def create_track(request):
        body = await request.json()
        hits.append(("POST", body["title"], dict(request.query)))
        return web.json_response({"id": 1, **body})

    async def failing(request):
        return web.json_response({"error": "nope"}, status=503)

    app = web.Application()
    app.router.add_get("/tracks/{id}", get_track)
    app.router.add_post("/tracks", create_track)
    app.router.add_get("/failing", failing)

    server = TestServer(app)
    await server.start_server()
    try:
        async with aiohttp.ClientSession() as session:
            base_url = str(server.make_url("/"))
            yield HTTPSource(session, DataSourceCache(), base_url), hits
    finally:
        await server.close()


def test_url():
    source = HTTPSource(None, DataSourceCache(), "http://tracks.local/")
    assert source.url("/tracks/1") == "http://tracks.local/tracks/1"
    assert source.url("tracks/1") == "http://tracks.local/tracks/1"
    assert HTTPSource(None, DataSourceCache()).url("/a") == "/a"


@pytest.mark.asyncio
async def test_get_is_deduplicated_and_cached():
    async with tracks_server() as (source, hits):
        results = await asyncio.gather(
            *[source.get("/tracks/7") for _ in range(5)]
        )
        assert results == [{"id": 7, "title": "Track"}] * 5
        assert await source.get("/tracks/7") == {"id": 7, "title": "Track"}
        assert hits == [("GET", "7", {})]

        await source.get("/tracks/7", params={"lang": "en"})
        assert hits[-1] == ("GET", "7", {"lang": "en"})
        assert len(hits) == 2

        key = fetch_key("GET", source.url("/tracks/7"))
        await source.cache.invalidate(key)
        await source.get("/tracks/7")
        assert len(hits) == 3


@pytest.mark.asyncio
async def test_post_is_not_cached():
    async with tracks_server() as (source, hits):
        created = await asyncio.gather(
            source.post("/tracks", json={"title": "A"}),
            source.post("/tracks", json={"title": "A"}),
        )
        assert created == [{"id": 1, "title": "A"}] * 2
        assert len(hits) == 1

        await source.post("/tracks", json={"title": "A"})
        assert len(hits) == 2


@pytest.mark.asyncio
async def test_error_status():
    async with tracks_server() as (source, hits):
        with pytest.raises(FetchError) as err:
            await source.get("/failing")
        assert err.value.status == 503
        assert err.value.url == source.url("/failing")
        assert err.value.key == fetch_key("GET", source.url("/failing"))
        assert "failed with status 503" in err.value.message


@pytest.mark.asyncio
async def test_connection_error():
    async with aiohttp.ClientSession() as session:
        # nothing listens on the port 1 of the localhost
        source = HTTPSource(session, DataSourceCache(), "http://127.0.0.1:1")
        with pytest.raises(FetchError) as err:
            await source.get("/tracks/1")
    assert isinstance(err.value.__cause__, aiohttp.ClientError)
    assert err.value.status is None
    assert err.value.url == "http://127.0.0.1:1/tracks/1"
