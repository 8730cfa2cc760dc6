"""Segment retrieval and decryption."""

from __future__ import annotations

import structlog

from crunchystream.domain.entities.segment import Segment
from crunchystream.domain.exceptions import InputError
from crunchystream.domain.ports.executor import ExecutorPort
from crunchystream.domain.ports.streaming import WritableSink
from crunchystream.infrastructure.streaming.crypto import decrypt

log = structlog.get_logger(__name__)


class SegmentFetcher:
    """Fetches segments at most once per call; no caching, no retries.

    Calls are independent, so callers may run many of them concurrently.
    """

    def __init__(self, *, executor: ExecutorPort) -> None:
        self._executor = executor

    async def fetch(self, segment: Segment) -> bytes:
        """Raw segment bytes exactly as served."""
        return await self._executor.request_raw(segment.url)

    async def fetch_and_decrypt(self, segment: Segment) -> bytes:
        """Segment bytes with AES-128 removed; unencrypted segments pass through."""
        data = await self.fetch(segment)
        if segment.key is None:
            return data
        return decrypt(data, segment.key)

    async def write_to(self, segment: Segment, sink: WritableSink) -> int:
        """Fetch, decrypt if needed and write the segment to ``sink``."""
        data = await self.fetch_and_decrypt(segment)
        try:
            sink.write(data)
        except OSError as exc:
            raise InputError(f"failed to write segment: {exc}", url=segment.url) from exc
        log.debug(
            "segment_written",
            number=segment.number,
            init=segment.init,
            size=len(data),
        )
        return len(data)
