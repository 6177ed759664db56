#!/usr/bin/env python3
"""
HTTP access used by the connectivity probe and the self-updater.

The coroutines use aiohttp; the plain functions below drive them to
completion so the rest of the agent stays sequential.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiofiles
import aiohttp
from loguru import logger
from tqdm import tqdm

USER_AGENT = "winget-autoupdate"
CHUNK_SIZE = 8192


@asynccontextmanager
async def _http_session(total_timeout: float = 600) -> AsyncIterator[aiohttp.ClientSession]:
    """Create HTTP session with appropriate timeouts and settings."""
    timeout = aiohttp.ClientTimeout(total=total_timeout, connect=30)
    async with aiohttp.ClientSession(
        timeout=timeout, headers={"User-Agent": USER_AGENT}
    ) as session:
        yield session


async def fetch_json_async(url: str) -> Any:
    async with _http_session(total_timeout=60) as session:
        async with session.get(url, headers={"Accept": "application/json"}) as response:
            response.raise_for_status()
            return await response.json()


async def probe_async(url: str, timeout: float = 10) -> bool:
    try:
        async with _http_session(total_timeout=timeout) as session:
            async with session.get(url) as response:
                return response.status < 500
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.trace(f"Probe of {url} failed: {e}")
        return False


async def download_file_async(url: str, destination: Path, show_progress: bool = False) -> Path:
    """
    Stream a file to disk.

    Raises:
        aiohttp.ClientError: On HTTP or connection failures
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    try:
        async with _http_session() as session:
            async with session.get(url) as response:
                response.raise_for_status()
                total_size = int(response.headers.get("content-length", 0))

                with tqdm(
                    total=total_size or None,
                    unit="B",
                    unit_scale=True,
                    desc=destination.name,
                    disable=not show_progress,
                ) as pbar:
                    async with aiofiles.open(destination, "wb") as f:
                        async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                            await f.write(chunk)
                            pbar.update(len(chunk))
    except (aiohttp.ClientError, asyncio.TimeoutError):
        destination.unlink(missing_ok=True)
        raise

    logger.debug(f"Downloaded {url} to {destination}")
    return destination


def fetch_json(url: str) -> Any:
    """GET a URL and decode its JSON body."""
    return asyncio.run(fetch_json_async(url))


def probe(url: str) -> bool:
    """Return True if the URL answers at all (any status below 500)."""
    return asyncio.run(probe_async(url))


def download_file(url: str, destination: Path, show_progress: bool = False) -> Path:
    return asyncio.run(download_file_async(url, destination, show_progress))
