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
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from llmClient import LLMError, LLMRateLimitError

logger = logging.getLogger(__name__)

NO_SUMMARY_TEXT = "no valid summary generated"


@dataclass
class GeminiConfig:
    api_key: str = ""
    api_base: str = "https://generativelanguage.googleapis.com/v1beta/models/"
    model: str = "gemini-2.0-flash"
    temperature: float = 0.3
    max_output_tokens: int = 300
    timeout_s: float = 60.0


def _retry_after_seconds(headers: Any) -> Optional[int]:
    ra = (headers or {}).get("Retry-After")
    if ra and str(ra).isdigit():
        return int(ra)
    return None


def extract_text(data: Dict[str, Any]) -> str:
    """candidates[0].content.parts[0].text, eller platshållaren om den saknas."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return NO_SUMMARY_TEXT
    text = (text or "").strip() if isinstance(text, str) else ""
    return text or NO_SUMMARY_TEXT


class GeminiClient:
    """
    Klient för Gemini generateContent (REST).

    429 -> LLMRateLimitError (ingen retry), övriga fel -> LLMError.
    Själva strypningen (samtidighet, anrop/min, tokens/min) sköts av
    RequestScheduler/TokenBudgetGuard, inte här.
    """

    def __init__(self, cfg: GeminiConfig):
        if not cfg.api_key:
            raise ValueError("Gemini kräver api_key (config llm.api_key eller LLM_API_KEY).")
        self.cfg = cfg
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_lock = asyncio.Lock()

    @property
    def url(self) -> str:
        return f"{self.cfg.api_base}{self.cfg.model}:generateContent"

    async def _get_session(self) -> aiohttp.ClientSession:
        async with self._session_lock:
            if self._session is not None and not self._session.closed:
                return self._session
            timeout = aiohttp.ClientTimeout(total=self.cfg.timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
            return self._session

    async def close(self) -> None:
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()
            self._session = None

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.cfg.temperature,
                "maxOutputTokens": self.cfg.max_output_tokens,
            },
        }

    async def generate(self, prompt: str) -> str:
        session = await self._get_session()
        logger.info("LLM request start (model=%s)", self.cfg.model)

        try:
            async with session.post(
                self.url,
                params={"key": self.cfg.api_key},
                json=self.build_payload(prompt),
            ) as resp:
                if resp.status == 429:
                    raise LLMRateLimitError(
                        "Gemini: rate limit triggered (HTTP 429)",
                        _retry_after_seconds(resp.headers),
                    )
                if resp.status >= 400:
                    text = await resp.text(errors="ignore")
                    logger.error("Gemini error %s: %s", resp.status, text[:400])
                    raise LLMError(f"Gemini error {resp.status}: {text[:400]}")
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise LLMError(f"Gemini request failed: {e}") from e

        text = extract_text(data if isinstance(data, dict) else {})
        logger.info("LLM request done (chars=%d)", len(text))
        return text
