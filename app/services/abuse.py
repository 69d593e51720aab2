"""Deterrent for organizations that flood the server with location posts.

Flagged organizations never reach decoding or storage. They get a 200 with a
very large, slowly streamed body instead: the success status stops the SDK
from retrying and the payload ties up the abusive client. This is policy,
not an error path.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from fastapi.responses import StreamingResponse

from app.core.config import Settings

logger = logging.getLogger(__name__)


class AntiAbuseGuard:
    def __init__(
        self,
        flagged: frozenset[str],
        size_bytes: int,
        chunk_size: int = 64 * 1024,
        chunk_delay: float = 0.0,
    ) -> None:
        self.flagged = flagged
        self.size_bytes = size_bytes
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay
        self._chunk = bytes(chunk_size)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AntiAbuseGuard":
        return cls(
            flagged=settings.ddos_bomb_companies,
            size_bytes=settings.deterrent_size_bytes,
            chunk_size=settings.deterrent_chunk_size,
            chunk_delay=settings.deterrent_chunk_delay,
        )

    def is_flagged(self, org: str) -> bool:
        return org in self.flagged

    async def _stream(self) -> AsyncIterator[bytes]:
        remaining = self.size_bytes
        while remaining > 0:
            if remaining >= self.chunk_size:
                yield self._chunk
            else:
                yield self._chunk[:remaining]
            remaining -= self.chunk_size
            if self.chunk_delay:
                await asyncio.sleep(self.chunk_delay)

    def deterrent_response(self, org: str) -> StreamingResponse:
        logger.warning("Organization %s is flagged as abusive, streaming %d byte deterrent", org, self.size_bytes)
        return StreamingResponse(
            self._stream(),
            status_code=200,
            media_type="application/octet-stream",
            headers={"Content-Length": str(self.size_bytes)},
        )
