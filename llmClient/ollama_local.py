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
import json
import logging
from dataclasses import dataclass
from typing import List, Optional

import aiohttp

from llmClient import LLMError, LLMRateLimitError

logger = logging.getLogger(__name__)


@dataclass
class OllamaConfig:
    base_url: str = "http://localhost:11434"
    model: str = "llama3.1:latest"
    temperature: float = 0.3

    # Hur länge vi kan vänta på att Ollama börjar svara (första bytes/headers).
    # Sätt högt om din maskin är långsam eller modellen “tänker” länge.
    first_byte_timeout_s: int = 900  # 15 min

    # Max “tystnad” mellan bytes när streaming redan är igång.
    sock_read_timeout_s: int = 300  # 5 min

    # Heartbeat-logg när data faktiskt kommer in (inte true progress)
    progress_log_every_s: float = 2.0


class OllamaClient:
    """
    Ollama-klient mot /api/chat med NDJSON-streaming.

    Notera:
    - Ollama skickar typiskt NDJSON-rader. Vi läser med readline().
    - Retry och strypning görs utanför klienten (RetryPolicy/RequestScheduler).
    """

    def __init__(self, cfg: OllamaConfig):
        self.cfg = cfg

        self._session: Optional[aiohttp.ClientSession] = None
        self._session_lock = asyncio.Lock()

    async def _get_session(self) -> aiohttp.ClientSession:
        """
        Återanvänd en enda ClientSession för stabilare sockets + lägre overhead.
        """
        async with self._session_lock:
            if self._session is not None and not self._session.closed:
                return self._session

            # tillåt lång total tid, men styr “socket read” (tystnad)
            sock_read = int(
                max(self.cfg.first_byte_timeout_s, self.cfg.sock_read_timeout_s)
            )
            timeout = aiohttp.ClientTimeout(
                total=None,
                sock_connect=30,
                sock_read=sock_read,
            )
            connector = aiohttp.TCPConnector(keepalive_timeout=30, ttl_dns_cache=300)
            self._session = aiohttp.ClientSession(timeout=timeout, connector=connector)
            return self._session

    async def close(self) -> None:
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()
            self._session = None

    async def generate(self, prompt: str) -> str:
        session = await self._get_session()

        payload = {
            "model": self.cfg.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": True,
            "options": {"temperature": self.cfg.temperature},
        }

        url = f"{self.cfg.base_url.rstrip('/')}/api/chat"
        logger.info("LLM request start (model=%s)", self.cfg.model)

        chunks: List[str] = []
        total_chars = 0

        try:
            async with session.post(url, json=payload) as resp:
                if resp.status == 429:
                    raise LLMRateLimitError(f"Ollama rate limited ({resp.status})")
                if resp.status >= 400:
                    text = await resp.text(errors="ignore")
                    logger.error("Ollama error %s: %s", resp.status, text[:400])
                    raise LLMError(f"Ollama error {resp.status}: {text[:400]}")
                last_log = asyncio.get_running_loop().time()

                # Läs NDJSON rad för rad
                while True:
                    raw = await resp.content.readline()
                    if not raw:
                        break

                    line = raw.decode("utf-8", errors="ignore").strip()
                    if not line:
                        continue

                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        # partials förekommer, hoppa över
                        continue

                    piece = ((data.get("message") or {}).get("content")) or ""
                    if piece:
                        chunks.append(piece)
                        total_chars += len(piece)

                    now = asyncio.get_running_loop().time()
                    if (now - last_log) >= float(self.cfg.progress_log_every_s):
                        logger.info(
                            "LLM still running... received_chars=%d", total_chars
                        )
                        last_log = now

                    if data.get("done") is True:
                        break
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise LLMError(f"Ollama request failed: {e}") from e

        text = "".join(chunks).strip()
        logger.info("LLM request done (chars=%d)", len(text))
        return text
