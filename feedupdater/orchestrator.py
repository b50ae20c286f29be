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
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from feedupdater.models import FeedEntry
from feedupdater.retry import RetryPolicy
from feedupdater.scheduler import RequestScheduler
from feedupdater.token_budget import (
    DEFAULT_TOKEN_PER_CHAR,
    TokenBudgetGuard,
    estimate_tokens,
)

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = "summary generation failed"

SummarizeFn = Callable[[str, str], Awaitable[str]]


class EmptySummaryError(Exception):
    pass


@dataclass
class SummarizationOutcome:
    items: List[FeedEntry] = field(default_factory=list)
    summarized: int = 0
    failed: int = 0


class SummarizationOrchestrator:
    """
    Sätter summary på nya items via budget -> retry -> scheduler -> LLM.

    Budgetkontrollen görs i tur och ordning innan varje item skickas, så en
    väntan på token-fönstret pausar hela loopen. Själva anropen körs sedan
    parallellt upp till schedulerns gränser. Ett item som inte går att
    summera får FALLBACK_SUMMARY, aldrig ett undantag uppåt.
    """

    def __init__(
        self,
        summarize_fn: SummarizeFn,
        scheduler: RequestScheduler,
        budget: TokenBudgetGuard,
        retry_policy: RetryPolicy,
        *,
        token_per_char: float = DEFAULT_TOKEN_PER_CHAR,
        fallback_summary: str = FALLBACK_SUMMARY,
    ):
        self._summarize_fn = summarize_fn
        self._scheduler = scheduler
        self._budget = budget
        self._retry = retry_policy
        self._token_per_char = token_per_char
        self.fallback_summary = fallback_summary

    async def _call(self, title: str, body: str) -> str:
        text = await self._summarize_fn(title, body)
        text = (text or "").strip()
        if not text:
            raise EmptySummaryError("LLM returned an empty summary")
        return text

    async def _summarize_entry(self, entry: FeedEntry) -> Optional[str]:
        try:
            return await self._retry.execute(
                self._scheduler.submit, self._call, entry.title, entry.body
            )
        except Exception as e:
            logger.error(
                "Summary failed for %r (%s): %s", entry.title, entry.link, e
            )
            return None

    async def summarize(
        self, merged_items: Sequence[FeedEntry], needs_summary: Sequence[FeedEntry]
    ) -> SummarizationOutcome:
        new_links = {i.link for i in needs_summary if i.link}
        pending: Dict[str, "asyncio.Task[Optional[str]]"] = {}

        for item in merged_items:
            if item.link not in new_links or item.has_summary or item.link in pending:
                continue
            tokens = estimate_tokens(item.title, item.body, self._token_per_char)
            await self._budget.wait_for_budget(tokens)
            pending[item.link] = asyncio.ensure_future(self._summarize_entry(item))

        if pending:
            logger.info("Summerar %d nya items", len(pending))
            await asyncio.gather(*pending.values())

        out = SummarizationOutcome()
        for item in merged_items:
            task = pending.get(item.link)
            if task is None:
                out.items.append(item)
                continue
            summary = task.result()
            if summary is None:
                out.failed += 1
                summary = self.fallback_summary
            else:
                out.summarized += 1
            out.items.append(item.with_summary(summary))
        return out
