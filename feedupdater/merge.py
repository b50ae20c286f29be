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

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from feedupdater.models import FeedEntry


@dataclass
class MergeResult:
    merged_items: List[FeedEntry] = field(default_factory=list)
    needs_summary: List[FeedEntry] = field(default_factory=list)


def merge_feed_items(
    previous_items: Sequence[FeedEntry],
    fresh_items: Sequence[FeedEntry],
    max_items: int,
) -> MergeResult:
    """
    Slår ihop förra snapshotens items med nyss hämtade items.

    - identitet = link; items utan link kan inte dedupliceras och tas bort
    - ordningen följer senaste hämtningen, kapad till max_items
    - items som bara finns i previous_items försvinner
    - en befintlig summary följer med till det nya recordet
    - needs_summary = items vars link inte fanns i previous_items
    """
    if max_items < 0:
        raise ValueError(f"max_items must be >= 0, got {max_items}")

    previous: Dict[str, FeedEntry] = {}
    for item in previous_items:
        if item.link:
            previous[item.link] = item

    merged: List[FeedEntry] = []
    needs_summary: List[FeedEntry] = []
    seen = set()

    for item in fresh_items:
        if not item.link or item.link in seen:
            continue
        seen.add(item.link)

        existing = previous.get(item.link)
        if existing is None:
            needs_summary.append(item)

        summary = existing.summary if existing and existing.summary else item.summary
        merged.append(item.with_summary(summary))

    return MergeResult(merged_items=merged[:max_items], needs_summary=needs_summary)
