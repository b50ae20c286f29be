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
"""Tests for feed parsing och FeedFetcher (lokal aiohttp-server, inget internet)."""

import pytest
from aiohttp import test_utils, web

from feedupdater.ingest import FeedFetcher, FetchError, parse_feed

pytestmark = pytest.mark.anyio

RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
<channel>
<title>Exempelkälla</title>
<link>https://example.com/</link>
<description>Nyheter</description>
<item>
<title>Första</title>
<link>https://example.com/1</link>
<pubDate>Tue, 02 Jan 2024 03:04:05 GMT</pubDate>
<description>&lt;p&gt;Hej   &lt;b&gt;världen&lt;/b&gt;&lt;/p&gt;</description>
<dc:creator>Anna</dc:creator>
<enclosure url="https://example.com/1.mp3" type="audio/mpeg" length="123"/>
</item>
<item>
<title>Andra</title>
<link>https://example.com/2</link>
</item>
</channel>
</rss>
""".encode("utf-8")

ATOM = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
<title>Atomkälla</title>
<subtitle>Undertitel</subtitle>
<link href="https://atom.example/"/>
<updated>2024-03-01T10:00:00Z</updated>
<entry>
<title>Post</title>
<link href="https://atom.example/post"/>
<id>urn:post</id>
<updated>2024-03-01T10:00:00Z</updated>
<content type="html">&lt;p&gt;Full text&lt;/p&gt;</content>
</entry>
</feed>
""".encode("utf-8")


class TestParseFeed:
    def test_rss_channel_and_items(self):
        snap = parse_feed("https://example.com/rss", RSS)

        assert snap.source_url == "https://example.com/rss"
        assert snap.title == "Exempelkälla"
        assert snap.description == "Nyheter"
        assert snap.link == "https://example.com/"
        assert [i.link for i in snap.items] == ["https://example.com/1", "https://example.com/2"]

    def test_rss_item_fields(self):
        first = parse_feed("https://example.com/rss", RSS).items[0]

        assert first.title == "Första"
        assert first.published_at == "Tue, 02 Jan 2024 03:04:05 GMT"
        assert first.iso_date == "2024-01-02T03:04:05.000Z"
        assert first.author == "Anna"
        assert "världen" in first.body
        assert first.body_snippet == "Hej världen"
        assert first.enclosure.url == "https://example.com/1.mp3"
        assert first.enclosure.media_type == "audio/mpeg"
        assert first.summary is None

    def test_item_without_date_or_enclosure(self):
        second = parse_feed("https://example.com/rss", RSS).items[1]

        assert second.iso_date == ""
        assert second.enclosure is None

    def test_atom_content_is_preferred(self):
        snap = parse_feed("https://atom.example/feed", ATOM)

        assert snap.title == "Atomkälla"
        assert snap.description == "Undertitel"
        entry = snap.items[0]
        assert entry.link == "https://atom.example/post"
        assert "Full text" in entry.body
        assert entry.body_snippet == "Full text"
        assert entry.iso_date == "2024-03-01T10:00:00.000Z"

    def test_garbage_is_a_fetch_error(self):
        with pytest.raises(FetchError) as excinfo:
            parse_feed("https://example.com/rss", b"this is not a feed")

        assert excinfo.value.source_url == "https://example.com/rss"


@pytest.fixture
async def feed_server():
    async def rss(request):
        return web.Response(body=RSS, content_type="application/rss+xml")

    async def missing(request):
        return web.Response(status=404, text="nope")

    app = web.Application()
    app.router.add_get("/rss", rss)
    app.router.add_get("/missing", missing)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


class TestFeedFetcher:
    async def test_fetches_and_parses(self, feed_server):
        url = str(feed_server.make_url("/rss"))

        async with FeedFetcher(timeout_s=5) as fetcher:
            snap = await fetcher.fetch(url)

        assert snap.source_url == url
        assert len(snap.items) == 2

    async def test_http_error_is_fetch_error(self, feed_server):
        url = str(feed_server.make_url("/missing"))

        async with FeedFetcher(timeout_s=5) as fetcher:
            with pytest.raises(FetchError) as excinfo:
                await fetcher.fetch(url)

        assert excinfo.value.__cause__ is not None

    async def test_must_be_used_as_context_manager(self):
        with pytest.raises(RuntimeError):
            await FeedFetcher().fetch("https://example.com/rss")
