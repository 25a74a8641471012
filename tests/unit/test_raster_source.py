"""
Raster source tests: reference resolution and the fetch deadline.
"""

import asyncio
import time

import httpx
import pytest

from exceptions import ResourceNotFoundError, UpstreamError
from infrastructure.memory import InMemoryGeoDataRepository
from infrastructure.raster_source import HttpRasterSource
from services.raster_ops import encode_geotiff
from tests.factories.model_factories import gradient_raster


def _source(handler, timeout=5.0):
    return HttpRasterSource(InMemoryGeoDataRepository(), timeout=timeout,
                            transport=httpx.MockTransport(handler))


class TestFetch:

    def test_body_is_returned(self):
        source = _source(lambda request: httpx.Response(200, content=b"raster-bytes"))
        assert source._fetch("https://data.test/dem.tif") == b"raster-bytes"

    def test_http_error_status(self):
        source = _source(lambda request: httpx.Response(404))

        with pytest.raises(UpstreamError, match="HTTP 404"):
            source._fetch("https://data.test/missing.tif")

    def test_trickling_body_cut_off_at_deadline(self):
        async def trickle():
            for _ in range(20):
                await asyncio.sleep(0.1)
                yield b"x" * 10

        source = _source(lambda request: httpx.Response(200, content=trickle()), timeout=0.3)

        started = time.monotonic()
        with pytest.raises(UpstreamError, match="Timed out fetching raster after 0.3s"):
            source._fetch("https://data.test/slow.tif")

        assert time.monotonic() - started < 1.5

    def test_load_decodes_fetched_raster(self):
        raster = gradient_raster(4)
        payload = encode_geotiff(raster.data, raster, nodata=-9999.0)
        source = _source(lambda request: httpx.Response(200, content=payload))

        raster = source.load("https://data.test/dem.tif")

        assert (raster.width, raster.height) == (4, 4)


class TestResolution:

    def test_unknown_dataset(self):
        source = HttpRasterSource(InMemoryGeoDataRepository())

        with pytest.raises(ResourceNotFoundError, match="Dataset not found: ds-missing"):
            source.load("ds-missing")
