"""
app/services/file_reader.py

Asynchronous upload reading with a single success/failure outcome.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol

from app.errors import FileReadError

logger = logging.getLogger(__name__)


class AsyncReadable(Protocol):
    """
    Anything exposing ``await read()`` that returns the full content.

    FastAPI's ``UploadFile`` satisfies this protocol.
    """

    async def read(self) -> bytes | str: ...


class LocalCsvFile:
    """
    Local file source read off the event loop in a worker thread.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @property
    def filename(self) -> str:
        return self.path.name

    async def read(self) -> bytes:
        return await asyncio.to_thread(self.path.read_bytes)


async def read_upload_text(source: AsyncReadable) -> str:
    """
    Read the whole upload and decode it as UTF-8, dropping any BOM.

    Raises:
        FileReadError: If the source cannot be read or decoded.
    """

    try:
        content = await source.read()
        if isinstance(content, str):
            return content.removeprefix("\ufeff")
        return content.decode("utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Failed to read upload: %s", exc)
        raise FileReadError("Failed to read file") from exc
