# ============================================================================
# RASTER SOURCE
# ============================================================================
# STATUS: Infrastructure - raster reference resolution and decoding
# PURPOSE: Turn a URL, local path or dataset id into RasterData
# EXPORTS: HttpRasterSource, decode_raster
# INTERFACES: IRasterSource
# DEPENDENCIES: httpx, rasterio, numpy
# ============================================================================
"""
Raster Source

Reference resolution order:
    http:// / https://   fetched with httpx under a total deadline
    file:// / local path read from disk
    anything else        project dataset id, resolved to a URL/path
                         through IGeoDataRepository and then fetched

A fetch that exceeds the deadline fails with UpstreamError so a stalled
server cannot hold a worker slot. Bytes are decoded in memory with
rasterio's MemoryFile.
"""

import asyncio
import os
from typing import Optional
from urllib.parse import unquote, urlparse

import httpx
import numpy as np
from rasterio.errors import RasterioIOError
from rasterio.io import MemoryFile

from core.models.raster import RasterData
from exceptions import ResourceNotFoundError, UpstreamError, ValidationError
from interfaces.repository import IGeoDataRepository, IRasterSource
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "RasterSource")


def decode_raster(content: bytes, source: Optional[str] = None) -> RasterData:
    """
    Decode raster bytes (any GDAL-readable format) into RasterData.

    Raises:
        UpstreamError: Bytes are not a readable raster
    """
    try:
        with MemoryFile(content) as memfile:
            with memfile.open() as src:
                bands = src.read().astype("float64")
                bounds = (src.bounds.left, src.bounds.bottom, src.bounds.right, src.bounds.top)
                return RasterData(
                    bands=bands,
                    bounds=bounds,
                    pixel_size=src.res,
                    nodata=src.nodata,
                    crs=src.crs.to_string() if src.crs else None,
                    source=source,
                )
    except RasterioIOError as e:
        raise UpstreamError(f"Could not decode raster from {source or 'bytes'}: {e}") from e


class HttpRasterSource(IRasterSource):
    """
    IRasterSource over HTTP and the local filesystem.

    Args:
        geo_repo: Resolves dataset ids to stored file URLs
        timeout: Total seconds allowed for one fetch
        transport: Optional httpx async transport (tests)
    """

    def __init__(
        self,
        geo_repo: IGeoDataRepository,
        timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.geo_repo = geo_repo
        self.timeout = timeout
        self.transport = transport

    def load(self, reference: str) -> RasterData:
        if not reference or not isinstance(reference, str):
            raise ValidationError("Raster reference must be a non-empty string")

        location = reference
        if not self._is_location(reference):
            location = self.geo_repo.resolve_dataset_url(reference)
            if not location:
                raise ResourceNotFoundError(f"Dataset not found: {reference}")
            logger.debug(f"Resolved dataset {reference} -> {location}")

        content = self._read(location)
        raster = decode_raster(content, source=location)
        logger.info(
            f"Loaded raster {location}: {raster.width}x{raster.height}, {raster.count} band(s)"
        )
        return raster

    @staticmethod
    def _is_location(reference: str) -> bool:
        scheme = urlparse(reference).scheme.lower()
        if scheme in ("http", "https", "file"):
            return True
        return os.path.isabs(reference) or os.path.exists(reference)

    def _read(self, location: str) -> bytes:
        parsed = urlparse(location)
        scheme = parsed.scheme.lower()
        if scheme in ("http", "https"):
            return self._fetch(location)
        path = unquote(parsed.path) if scheme == "file" else location
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as e:
            raise ResourceNotFoundError(f"Raster file not found: {path}") from e
        except OSError as e:
            raise UpstreamError(f"Failed to read raster {path}: {e}") from e

    def _fetch(self, url: str) -> bytes:
        """
        Download on a private event loop with one hard deadline.

        Runs on executor threads, which have no running loop. wait_for
        cancels the download wherever it is blocked, so a server that
        trickles bytes is cut off at the deadline too.
        """
        try:
            return asyncio.run(asyncio.wait_for(self._download(url), timeout=self.timeout))
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise UpstreamError(f"Timed out fetching raster after {self.timeout:g}s: {url}") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"Raster fetch failed with HTTP {e.response.status_code}: {url}"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Raster fetch failed: {url}: {e}") from e

    async def _download(self, url: str) -> bytes:
        chunks = []
        async with httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, transport=self.transport
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                async for chunk in response.aiter_raw():
                    chunks.append(chunk)
        return b"".join(chunks)
