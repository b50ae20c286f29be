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
import math
import threading
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_PER_CHAR = 0.4
DEFAULT_TOKEN_CEILING = 900_000  # lämnar ~100k marginal mot 1M/min
DEFAULT_WINDOW_S = 60.0


def estimate_tokens(
    title: str, body: str, token_per_char: float = DEFAULT_TOKEN_PER_CHAR
) -> int:
    # grov approximation per tecken, samma koefficient för alla språk
    return int(math.floor(len((title or "") + (body or "")) * token_per_char))


class TokenBudgetGuard:
    """
    Tokenbudget per tidsfönster (default 900k tokens / 60s).

    reserve() returnerar hur länge anroparen ska vänta (0.0 = reserverat).
    Räknaren muteras bara under _lock och inget await sker medan den hålls,
    så samtidiga tasks (eller trådar) kan inte tappa uppdateringar.
    """

    def __init__(
        self,
        ceiling: int = DEFAULT_TOKEN_CEILING,
        window_s: float = DEFAULT_WINDOW_S,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if ceiling <= 0:
            raise ValueError("ceiling must be > 0")
        if window_s <= 0:
            raise ValueError("window_s must be > 0")

        self._ceiling = int(ceiling)
        self._window_s = float(window_s)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._consumed = 0
        self._window_start = clock()
        # sant direkt efter reset(), dvs. när anroparen redan väntat ut ett fönster
        self._after_reset = False

    @property
    def ceiling(self) -> int:
        return self._ceiling

    @property
    def window_length(self) -> float:
        return self._window_s

    @property
    def consumed(self) -> int:
        with self._lock:
            return self._consumed

    def reset(self) -> None:
        with self._lock:
            self._consumed = 0
            self._window_start = self._clock()
            self._after_reset = True

    def reserve(self, estimated_tokens: int) -> float:
        tokens = max(0, int(estimated_tokens))
        with self._lock:
            now = self._clock()
            elapsed = now - self._window_start
            if elapsed >= self._window_s:
                self._consumed = 0
                self._window_start = now
                self._after_reset = False
                elapsed = 0.0

            if self._consumed + tokens > self._ceiling:
                if self._consumed == 0 and self._after_reset:
                    # större än hela taket: släpps först efter ett helt väntat fönster
                    logger.warning(
                        "Token estimate %d exceeds ceiling %d on its own; admitting after full window",
                        tokens,
                        self._ceiling,
                    )
                    self._after_reset = False
                    self._consumed = tokens
                    return 0.0
                return max(0.0, self._window_s - elapsed)

            self._after_reset = False
            self._consumed += tokens
            return 0.0

    async def wait_for_budget(self, estimated_tokens: int) -> float:
        """Reservera, och vänta ut fönstret om taket nås. Returnerar väntad tid."""
        waited = 0.0
        while True:
            wait_s = self.reserve(estimated_tokens)
            if wait_s <= 0:
                return waited
            logger.warning(
                "Nära token-taket (%d/%d), pausar %.1fs",
                self.consumed,
                self._ceiling,
                wait_s,
            )
            await self._sleep(wait_s)
            waited += wait_s
            self.reset()
