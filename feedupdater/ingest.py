# LICENSE HEADER MANAGED BY add-license-header
#
# BSD 3-Clause License
#
# Copyright (c) 2026, Martin Vesterlund
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# 1. Redistributions of source code must retain the above copyright notice, this
#    list of conditions and the following disclaimer.
#
# 2. Redistributions in binary form must reproduce the above copyright notice,
#    this list of conditions and the following disclaimer in the documentation
#    and/or other materials provided with the distribution.
#
# 3. Neither the name of the copyright holder nor the names of its
#    contributors may be used to endorse or promote products derived from
#    this software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
# DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE
# FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
# SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
# OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
# OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
#
from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional

import aiohttp
import feedparser

from feedupdater.helpers import entry_iso_date, strip_html
from feedupdater.models import Enclosure, FeedEntry, FeedSnapshot

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "feedupdater/1.0 (+rss summary updater; rate-limited)"


class FetchError(Exception):
    def __init__(self, source_url: str, message: str):
        super().__init__(f"Failed to fetch feed {source_url}: {message}")
        self.source_url = source_url


def _s(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _entry_body(entry: feedparser.FeedParserDict) -> str:
    content = entry.get("content")
    if isinstance(content, list) and content:
        value = content[0].get("value") if isinstance(content[0], dict) else None
        if isinstance(value, str) and value.strip():
            return value
    return entry.get("summary") or entry.get("description") or ""


def _entry_enclosure(entry: feedparser.FeedParserDict) -> Optional[Enclosure]:
    enclosures = entry.get("enclosures") or []
    if not enclosures or not isinstance(enclosures[0], dict):
        return None
    enc = enclosures[0]
    return Enclosure(
        url=_s(enc.get("href") or enc.get("url")),
        media_type=_s(enc.get("type")),
    )


def entry_from_feedparser(entry: feedparser.FeedParserDict) -> FeedEntry:
    """Ren mappning feedparser-entry -> FeedEntry (ingen summary)."""
    body = _entry_body(entry)
    return FeedEntry(
        link=_s(entry.get("link")),
        title=_s(entry.get("title")),
        published_at=_s(entry.get("published") or entry.get("updated")),
        iso_date=entry_iso_date(entry),
        body=body,
        body_snippet=strip_html(body),
        author=_s(entry.get("author")),
        enclosure=_entry_enclosure(entry),
    )


def snapshot_from_parsed(
    source_url: str, parsed: feedparser.FeedParserDict
) -> FeedSnapshot:
    feed = parsed.get("feed") or {}
    items: List[FeedEntry] = [entry_from_feedparser(e) for e in parsed.get("entries") or []]
    return FeedSnapshot(
        source_url=source_url,
        title=_s(feed.get("title")),
        description=_s(feed.get("subtitle") or feed.get("description")),
        link=_s(feed.get("link")),
        items=items,
    )


def parse_feed(source_url: str, content: bytes) -> FeedSnapshot:
    parsed = feedparser.parse(content)
    feed = parsed.get("feed") or {}
    if parsed.get("bozo") and not parsed.get("entries") and not feed.get("title"):
        raise FetchError(source_url, f"not a feed ({parsed.get('bozo_exception')})")
    return snapshot_from_parsed(source_url, parsed)


class FeedFetcher:
    """
    Hämtar och parsar en källa. Används som async context manager så att en
    enda ClientSession delas av alla källor i en körning.
    """

    def __init__(self, timeout_s: float = 20, user_agent: str = DEFAULT_USER_AGENT):
        self.timeout_s = float(timeout_s)
        self.user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "FeedFetcher":
        connector = aiohttp.TCPConnector(limit=50, ttl_dns_cache=300)
        self._session = aiohttp.ClientSession(
            headers={"User-Agent": self.user_agent},
            connector=connector,
            max_line_size=16384,
            max_field_size=32768,
        )
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._session is not None:
            await self._session.close()
        self._session = None

    async def fetch(self, source_url: str) -> FeedSnapshot:
        if self._session is None:
            raise RuntimeError("FeedFetcher must be used as 'async with'")

        try:
            async with self._session.get(
                source_url, timeout=aiohttp.ClientTimeout(total=self.timeout_s)
            ) as resp:
                resp.raise_for_status()
                content = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(source_url, str(e) or e.__class__.__name__) from e

        logger.info("%s hämtad (%d bytes)", source_url, len(content))
        return parse_feed(source_url, content)
