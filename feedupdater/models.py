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

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

SCHEMA_VERSION = 1


def _str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


@dataclass(frozen=True)
class Enclosure:
    url: str = ""
    media_type: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "type": self.media_type}

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["Enclosure"]:
        if not isinstance(raw, dict):
            return None
        return cls(url=_str(raw.get("url")), media_type=_str(raw.get("type")))


@dataclass(frozen=True)
class FeedEntry:
    """
    Ett inlägg i en källa. `link` är identiteten inom källan.

    Wire-nycklarna (pubDate, content, contentSnippet, creator) är desamma som
    i de datafiler som redan finns på disk.
    """

    link: str = ""
    title: str = ""
    published_at: str = ""
    iso_date: str = ""
    body: str = ""
    body_snippet: str = ""
    author: str = ""
    enclosure: Optional[Enclosure] = None
    summary: Optional[str] = None

    @property
    def has_summary(self) -> bool:
        return bool(self.summary)

    def with_summary(self, summary: Optional[str]) -> "FeedEntry":
        return replace(self, summary=summary)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "title": self.title,
            "link": self.link,
            "pubDate": self.published_at,
            "isoDate": self.iso_date,
            "content": self.body,
            "contentSnippet": self.body_snippet,
            "creator": self.author,
        }
        if self.enclosure is not None:
            out["enclosure"] = self.enclosure.to_dict()
        if self.summary is not None:
            out["summary"] = self.summary
        return out

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FeedEntry":
        summary = raw.get("summary")
        return cls(
            link=_str(raw.get("link")),
            title=_str(raw.get("title")),
            published_at=_str(raw.get("pubDate")),
            iso_date=_str(raw.get("isoDate")),
            body=_str(raw.get("content")),
            body_snippet=_str(raw.get("contentSnippet")),
            author=_str(raw.get("creator")),
            enclosure=Enclosure.from_dict(raw.get("enclosure")),
            summary=_str(summary) if summary is not None else None,
        )


@dataclass
class FeedSnapshot:
    """Sparat tillstånd för en källa. Ersätts i sin helhet vid varje uppdatering."""

    source_url: str
    title: str = ""
    description: str = ""
    link: str = ""
    items: List[FeedEntry] = field(default_factory=list)
    last_updated: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schemaVersion": SCHEMA_VERSION,
            "sourceUrl": self.source_url,
            "title": self.title,
            "description": self.description,
            "link": self.link,
            "items": [i.to_dict() for i in self.items],
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FeedSnapshot":
        # dokument utan schemaVersion är de gamla filerna (= version 1)
        version = raw.get("schemaVersion", SCHEMA_VERSION)
        if version != SCHEMA_VERSION:
            raise ValueError(f"Unsupported snapshot schemaVersion: {version!r}")

        items = raw.get("items") or []
        return cls(
            source_url=_str(raw.get("sourceUrl")),
            title=_str(raw.get("title")),
            description=_str(raw.get("description")),
            link=_str(raw.get("link")),
            items=[FeedEntry.from_dict(i) for i in items if isinstance(i, dict)],
            last_updated=_str(raw.get("lastUpdated")),
        )
