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
from typing import Any, Awaitable, Callable, TypeVar

from aiolimiter import AsyncLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestScheduler:
    """
    Global kö för utgående LLM-anrop.

    Två gränser samtidigt:
      - max antal samtidiga anrop (Semaphore)
      - max antal anrop per intervall (t.ex. 15 per 60s)

    AsyncLimiter körs med kapacitet 1 och jämn takt interval_s / interval_cap,
    så två starter ligger aldrig närmare än så och inget glidande fönster
    på interval_s rymmer fler än interval_cap starter. Ingen initial burst.

    Tasks släpps in i den ordning de skickades (FIFO via _admission),
    men kan bli klara i valfri ordning. Schemaläggaren gör inga retries och
    tittar inte på resultaten.
    """

    def __init__(
        self,
        concurrency: int = 3,
        interval_cap: int = 15,
        interval_s: float = 60.0,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if interval_cap < 1:
            raise ValueError("interval_cap must be >= 1")
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")

        self.concurrency = int(concurrency)
        self.interval_cap = int(interval_cap)
        self.interval_s = float(interval_s)

        self._slots = asyncio.Semaphore(self.concurrency)
        self._limiter = AsyncLimiter(1, self.interval_s / self.interval_cap)
        self._admission = asyncio.Lock()

        self.in_flight = 0
        self.peak_in_flight = 0
        self.dispatched = 0

    def submit(
        self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> "asyncio.Task[T]":
        return asyncio.ensure_future(self._run(fn, *args, **kwargs))

    async def _run(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        async with self._admission:
            await self._slots.acquire()
            try:
                await self._limiter.acquire()
            except BaseException:
                self._slots.release()
                raise
            self.in_flight += 1
            self.dispatched += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            logger.debug(
                "Dispatch #%d (in_flight=%d/%d)",
                self.dispatched,
                self.in_flight,
                self.concurrency,
            )

        try:
            return await fn(*args, **kwargs)
        finally:
            self.in_flight -= 1
            self._slots.release()
