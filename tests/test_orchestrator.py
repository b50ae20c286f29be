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
"""Tests for SummarizationOrchestrator."""

import pytest

from conftest import RecordingSleep
from feedupdater.models import FeedEntry
from feedupdater.orchestrator import FALLBACK_SUMMARY, SummarizationOrchestrator
from feedupdater.retry import RetryPolicy
from feedupdater.scheduler import RequestScheduler
from feedupdater.token_budget import TokenBudgetGuard
from llmClient import LLMError, LLMRateLimitError

pytestmark = pytest.mark.anyio


def entry(link, summary=None, body="text"):
    return FeedEntry(link=link, title=f"Title {link}", body=body, summary=summary)


class FakeSummarizer:
    """(title, body) -> text, med valfria fel per titel."""

    def __init__(self, failures=None):
        self.failures = {k: list(v) for k, v in (failures or {}).items()}
        self.calls = []

    async def __call__(self, title, body):
        self.calls.append(title)
        queue = self.failures.get(title)
        if queue:
            result = queue.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return f"summary of {title}"


def make_orchestrator(fn, budget=None, retry_sleep=None):
    return SummarizationOrchestrator(
        fn,
        RequestScheduler(concurrency=3, interval_cap=100, interval_s=1),
        budget or TokenBudgetGuard(1_000_000, 60),
        RetryPolicy(3, 2.0, 2.0, sleep=retry_sleep or RecordingSleep()),
    )


class TestSummarize:
    async def test_only_new_entries_without_summary_are_summarized(self):
        fn = FakeSummarizer()
        orch = make_orchestrator(fn)
        merged = [entry("a", summary="old"), entry("b"), entry("c")]
        needs = [entry("b"), entry("c")]

        outcome = await orch.summarize(merged, needs)

        assert sorted(fn.calls) == ["Title b", "Title c"]
        assert [i.summary for i in outcome.items] == [
            "old",
            "summary of Title b",
            "summary of Title c",
        ]
        assert outcome.summarized == 2
        assert outcome.failed == 0

    async def test_known_entry_without_summary_is_left_alone(self):
        fn = FakeSummarizer()
        orch = make_orchestrator(fn)

        outcome = await orch.summarize([entry("a")], [])

        assert fn.calls == []
        assert outcome.items == [entry("a")]

    async def test_preserves_merged_order_regardless_of_completion(self):
        fn = FakeSummarizer(failures={"Title a": [LLMError("slow")]})
        orch = make_orchestrator(fn)
        merged = [entry("a"), entry("b"), entry("c")]

        outcome = await orch.summarize(merged, merged)

        assert [i.link for i in outcome.items] == ["a", "b", "c"]
        assert outcome.items[0].summary == "summary of Title a"

    async def test_rate_limit_gives_fallback_without_retry(self):
        fn = FakeSummarizer(failures={"Title a": [LLMRateLimitError("429")]})
        orch = make_orchestrator(fn)

        outcome = await orch.summarize([entry("a"), entry("b")], [entry("a"), entry("b")])

        assert fn.calls.count("Title a") == 1
        assert outcome.items[0].summary == FALLBACK_SUMMARY
        assert outcome.items[1].summary == "summary of Title b"
        assert outcome.failed == 1
        assert outcome.summarized == 1

    async def test_exhausted_retries_give_fallback(self):
        sleep = RecordingSleep()
        fn = FakeSummarizer(failures={"Title a": [LLMError("x")] * 3})
        orch = make_orchestrator(fn, retry_sleep=sleep)

        outcome = await orch.summarize([entry("a")], [entry("a")])

        assert fn.calls == ["Title a"] * 3
        assert sleep.calls == [2.0, 4.0]
        assert outcome.items[0].summary == FALLBACK_SUMMARY

    async def test_empty_text_counts_as_failed_attempt(self):
        fn = FakeSummarizer(failures={"Title a": ["   ", "  riktig  "]})
        orch = make_orchestrator(fn)

        outcome = await orch.summarize([entry("a")], [entry("a")])

        assert fn.calls == ["Title a", "Title a"]
        assert outcome.items[0].summary == "riktig"

    async def test_budget_wait_pauses_submissions(self, fake_clock, recording_sleep):
        # 200 tecken * 0.4 = 80 tokens per item, taket räcker till ett item
        budget = TokenBudgetGuard(
            100, 60, clock=fake_clock, sleep=recording_sleep
        )
        fn = FakeSummarizer()
        orch = make_orchestrator(fn, budget=budget)
        items = [
            FeedEntry(link="a", body="x" * 200),
            FeedEntry(link="b", body="y" * 200),
        ]

        outcome = await orch.summarize(items, items)

        assert recording_sleep.calls == [60.0]
        assert outcome.summarized == 2

    async def test_custom_fallback_text(self):
        fn = FakeSummarizer(failures={"Title a": [LLMRateLimitError("429")]})
        orch = SummarizationOrchestrator(
            fn,
            RequestScheduler(),
            TokenBudgetGuard(),
            RetryPolicy(sleep=RecordingSleep()),
            fallback_summary="ingen sammanfattning",
        )

        outcome = await orch.summarize([entry("a")], [entry("a")])

        assert outcome.items[0].summary == "ingen sammanfattning"
