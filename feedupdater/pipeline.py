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

import datetime
import enum
import logging
from typing import Callable, Dict, Iterable, Optional, Protocol

from feedupdater.helpers import iso_utc, utc_now
from feedupdater.ingest import FetchError
from feedupdater.merge import merge_feed_items
from feedupdater.models import FeedSnapshot
from feedupdater.orchestrator import SummarizationOrchestrator
from persistence import PersistError, SnapshotStore

logger = logging.getLogger(__name__)


class Stage(enum.Enum):
    FETCHING = "fetching"
    MERGING = "merging"
    SUMMARIZING = "summarizing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class Fetcher(Protocol):
    async def fetch(self, source_url: str) -> FeedSnapshot: ...


class UpdatePipeline:
    """
    Uppdaterar en källa i taget:
    FETCHING -> MERGING -> SUMMARIZING -> PERSISTING -> DONE.

    FetchError/PersistError ger FAILED för källan (update_all fortsätter med
    nästa). Misslyckade summaries stoppar aldrig en källa.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        store: SnapshotStore,
        orchestrator: SummarizationOrchestrator,
        max_items_per_feed: int = 50,
        *,
        clock: Callable[[], datetime.datetime] = utc_now,
    ):
        self.fetcher = fetcher
        self.store = store
        self.orchestrator = orchestrator
        self.max_items_per_feed = int(max_items_per_feed)
        self._clock = clock
        self.stages: Dict[str, Stage] = {}

    def _enter(self, source_url: str, stage: Stage) -> None:
        self.stages[source_url] = stage
        logger.debug("%s: %s", source_url, stage.value)

    def _load_previous(self, source_url: str) -> Optional[FeedSnapshot]:
        try:
            return self.store.load(source_url)
        except Exception as e:
            # trasig/oläsbar fil behandlas som att inget finns sparat
            logger.warning("Kunde inte läsa sparad data för %s -> %s", source_url, e)
            return None

    async def update_source(self, source_url: str) -> FeedSnapshot:
        logger.info("Uppdaterar källa: %s", source_url)

        self._enter(source_url, Stage.FETCHING)
        try:
            fresh = await self.fetcher.fetch(source_url)
        except FetchError:
            self._enter(source_url, Stage.FAILED)
            raise

        self._enter(source_url, Stage.MERGING)
        previous = self._load_previous(source_url)
        merged = merge_feed_items(
            previous.items if previous else [],
            fresh.items,
            self.max_items_per_feed,
        )
        logger.info(
            "Hittade %d nya items i %s", len(merged.needs_summary), source_url
        )

        self._enter(source_url, Stage.SUMMARIZING)
        outcome = await self.orchestrator.summarize(
            merged.merged_items, merged.needs_summary
        )

        snapshot = FeedSnapshot(
            source_url=source_url,
            title=fresh.title,
            description=fresh.description,
            link=fresh.link,
            items=outcome.items,
            last_updated=iso_utc(self._clock()),
        )

        self._enter(source_url, Stage.PERSISTING)
        try:
            self.store.save(source_url, snapshot)
        except PersistError:
            self._enter(source_url, Stage.FAILED)
            raise

        self._enter(source_url, Stage.DONE)
        logger.info(
            "Klar: %s (items=%d, summerade=%d, misslyckade=%d)",
            source_url,
            len(snapshot.items),
            outcome.summarized,
            outcome.failed,
        )
        return snapshot

    async def update_all(self, source_urls: Iterable[str]) -> Dict[str, bool]:
        logger.info("Startar uppdatering av alla källor")
        results: Dict[str, bool] = {}

        for url in source_urls:
            try:
                await self.update_source(url)
                results[url] = True
            except (FetchError, PersistError) as e:
                logger.error("Uppdatering av %s misslyckades: %s", url, e)
                results[url] = False

        ok = sum(1 for v in results.values() if v)
        logger.info("%d/%d sources updated", ok, len(results))
        return results
