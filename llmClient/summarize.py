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

from typing import Awaitable, Callable

from feedupdater.helpers import clean_content

from llmClient import LLMClient

SummarizeFn = Callable[[str, str], Awaitable[str]]

DEFAULT_PROMPT_TEMPLATE = """You are a professional content summarizer. Based on the article title and content below, write a concise and accurate summary.
The summary should:
1. Capture the main points and key information of the article
2. Use clear and fluent language
3. Be around 100 words long
4. Stay objective and add no personal opinions
5. If the content is empty or carries no useful information, do not invent content that the title or body does not mention

Article title: {title}

Article content:
{content}
"""


def build_prompt(
    title: str, body: str, template: str = DEFAULT_PROMPT_TEMPLATE, clip_chars: int = 3000
) -> str:
    return template.format(title=title or "", content=clean_content(body, clip_chars))


def make_summarizer(
    llm: LLMClient,
    template: str = DEFAULT_PROMPT_TEMPLATE,
    clip_chars: int = 3000,
) -> SummarizeFn:
    """(title, body) -> text, det enda orkestreringen vet om LLM:en."""

    async def summarize(title: str, body: str) -> str:
        return await llm.generate(build_prompt(title, body, template, clip_chars))

    return summarize
