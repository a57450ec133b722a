"""HTTP adapter for multipart Bot API submissions."""
from __future__ import annotations

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_FILE_FIELD = "sticker_file"


class TransportFailure(RuntimeError):
    """Raised when a request never produced a response (connect, timeout, DNS, I/O)."""


class MalformedResponseFailure(TransportFailure):
    """Raised when a response arrived but its body could not be decoded (bad gzip, truncated stream)."""


@dataclass(frozen=True)
class TransportResponse:
    """Raw, uninterpreted response of one submission."""
    status_code: int
    body: str


def _read_file(path: Path) -> bytes:
    with open(path, "rb") as handle:
        return handle.read()


def _guess_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or "application/octet-stream"


class HTTPTransport:
    """
    HTTP client adapter for multipart uploads.

    Implements ITransport protocol. The local file is read fully and closed
    before the request is sent, so no handle outlives a single attempt.
    """

    def __init__(
        self,
        timeout: float = 60,
        file_field: str = DEFAULT_FILE_FIELD,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._timeout = timeout
        self._file_field = file_field
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def submit(
        self,
        url: str,
        fields: Dict[str, str],
        path: Path,
        filename: Optional[str] = None,
    ) -> TransportResponse:
        if not self._client:
            raise RuntimeError("HTTPTransport not initialized. Use 'async with' context.")

        path = Path(path)
        filename = filename or path.name
        content = await asyncio.to_thread(_read_file, path)

        files = {self._file_field: (filename, content, _guess_content_type(filename))}
        try:
            response = await self._client.post(url, data=fields, files=files)
        except httpx.DecodingError as exc:
            raise MalformedResponseFailure(f"{type(exc).__name__}: {exc}") from exc
        except httpx.RequestError as exc:
            raise TransportFailure(f"{type(exc).__name__}: {exc}") from exc

        logger.debug(
            "POST %s -> %s (%d bytes sent)",
            url.rsplit("/", 1)[-1],
            response.status_code,
            len(content),
        )
        return TransportResponse(status_code=response.status_code, body=response.text)
