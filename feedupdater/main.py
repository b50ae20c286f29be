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

import argparse
import asyncio
import logging
import os
import sys
from typing import Dict, List, Optional

from feedupdater.config import DEFAULT_CONFIG_PATH, ConfigError, Settings, load_settings
from feedupdater.helpers import setup_logging
from feedupdater.ingest import DEFAULT_USER_AGENT, FeedFetcher
from feedupdater.orchestrator import SummarizationOrchestrator
from feedupdater.pipeline import UpdatePipeline
from feedupdater.retry import RetryPolicy
from feedupdater.scheduler import RequestScheduler
from feedupdater.token_budget import TokenBudgetGuard
from llmClient import LLMClient, create_llm_client
from llmClient.summarize import DEFAULT_PROMPT_TEMPLATE, make_summarizer
from persistence import SnapshotStore, create_store

logger = logging.getLogger(__name__)


def build_orchestrator(settings: Settings, llm: LLMClient) -> SummarizationOrchestrator:
    t = settings.throttle
    r = settings.retry
    s = settings.summary
    return SummarizationOrchestrator(
        make_summarizer(
            llm,
            s.prompt_template or DEFAULT_PROMPT_TEMPLATE,
            s.clip_chars,
        ),
        RequestScheduler(t.concurrency, t.interval_cap, t.interval_s),
        TokenBudgetGuard(t.token_ceiling, t.token_window_s),
        RetryPolicy(
            r.max_attempts,
            r.base_delay_s,
            r.backoff_factor,
            max_delay=r.max_delay_s,
        ),
        token_per_char=t.token_per_char,
        fallback_summary=s.fallback,
    )


async def run_updates(
    settings: Settings,
    store: Optional[SnapshotStore] = None,
    llm: Optional[LLMClient] = None,
) -> Dict[str, bool]:
    store = store if store is not None else create_store(settings.store)
    llm = llm if llm is not None else create_llm_client(settings.llm)

    try:
        orchestrator = build_orchestrator(settings, llm)
        async with FeedFetcher(
            timeout_s=settings.fetch_timeout_s,
            user_agent=settings.user_agent or DEFAULT_USER_AGENT,
        ) as fetcher:
            pipeline = UpdatePipeline(
                fetcher, store, orchestrator, settings.max_items_per_feed
            )
            return await pipeline.update_all(settings.sources)
    finally:
        await llm.close()


async def run_pipeline(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, bool]:
    settings = load_settings(config_path)
    setup_logging(settings.log_level)
    logger.info(
        "Startar: %d källor, max %d items per källa",
        len(settings.sources),
        settings.max_items_per_feed,
    )
    return await run_updates(settings)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="feed-update",
        description="Hämtar RSS/Atom-källor, summerar nya inlägg och sparar resultatet.",
    )
    parser.add_argument(
        "--config",
        default=os.environ.get("FEEDUPDATER_CONFIG", DEFAULT_CONFIG_PATH),
        help="Sökväg till config.yaml (default: $FEEDUPDATER_CONFIG eller config.yaml)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    0 när körningen gick igenom (även om enskilda källor misslyckades),
    1 vid konfigurationsfel eller oväntat fel.
    """
    args = parse_args(argv)
    setup_logging(os.environ.get("LOG_LEVEL", "INFO"))

    try:
        results = asyncio.run(run_pipeline(args.config))
    except ConfigError as e:
        logger.error("Felaktig konfiguration: %s", e)
        return 1
    except Exception:
        logger.exception("Uppdateringen avbröts")
        return 1

    failed = [url for url, ok in results.items() if not ok]
    if failed:
        logger.warning("Misslyckade källor: %s", ", ".join(failed))
    return 0


if __name__ == "__main__":
    sys.exit(main())
