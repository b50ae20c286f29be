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

from typing import Any, Dict, Optional, Protocol

from feedupdater.retry import AbortCondition


class LLMError(Exception):
    pass


class LLMRateLimitError(LLMError, AbortCondition):
    def __init__(self, message: str, retry_after_seconds: Optional[int] = None):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class LLMClient(Protocol):
    async def generate(self, prompt: str) -> str: ...

    async def close(self) -> None: ...


def create_llm_client(llm_cfg: Dict[str, Any]) -> LLMClient:
    """
    Bygger klient från config['llm'].

    provider: gemini (default) | ollama
    """
    provider = (llm_cfg.get("provider") or "gemini").lower()

    if provider == "gemini":
        from llmClient.gemini import GeminiClient, GeminiConfig

        cfg = GeminiConfig(
            api_key=str(llm_cfg.get("api_key") or ""),
            api_base=str(
                llm_cfg.get("api_base")
                or "https://generativelanguage.googleapis.com/v1beta/models/"
            ),
            model=str(llm_cfg.get("model") or "gemini-2.0-flash"),
            temperature=float(llm_cfg.get("temperature", 0.3)),
            max_output_tokens=int(llm_cfg.get("max_output_tokens", 300)),
            timeout_s=float(llm_cfg.get("timeout_s", 60)),
        )
        return GeminiClient(cfg)

    if provider == "ollama":
        from llmClient.ollama_local import OllamaClient, OllamaConfig

        cfg = OllamaConfig(
            base_url=str(llm_cfg.get("base_url", "http://localhost:11434")),
            model=str(llm_cfg.get("model", "llama3.1:latest")),
            temperature=float(llm_cfg.get("temperature", 0.3)),
            first_byte_timeout_s=int(llm_cfg.get("first_byte_timeout_s", 900)),
            sock_read_timeout_s=int(llm_cfg.get("sock_read_timeout_s", 300)),
            progress_log_every_s=float(llm_cfg.get("progress_log_every_s", 2.0)),
        )
        return OllamaClient(cfg)

    raise ValueError(f"Unsupported LLM provider: {provider}")
