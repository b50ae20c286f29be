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

import calendar
import datetime
import logging
import re
import sys
from email.utils import parsedate_to_datetime
from typing import Any, Optional

_TAG_RE = re.compile(r"<[^>]*>?", re.MULTILINE)
_WS_RE = re.compile(r"\s{2,}")


def setup_logging(level: str = "INFO"):
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    for h in list(root.handlers):
        root.removeHandler(h)

    h = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        " %(asctime)s - %(name)s - %(levelname)s:   %(message)s"
    )
    h.setFormatter(formatter)
    root.addHandler(h)


def clip_text(s: str, n: int = 5000) -> str:
    s = (s or "").strip()
    return s if len(s) <= n else s[:n]


def strip_html(s: str) -> str:
    s = _TAG_RE.sub("", s or "")
    return _WS_RE.sub(" ", s).strip()


def clean_content(s: str, max_chars: int = 3000) -> str:
    """Tar bort HTML, kollapsar whitespace och kapar. Används för prompten."""
    return clip_text(strip_html(s), max_chars)


def iso_utc(dt: datetime.datetime) -> str:
    # samma format som JS Date.toISOString(): millisekunder + Z
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    dt = dt.astimezone(datetime.timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def entry_iso_date(entry: Any) -> str:
    """
    ISO-datum för ett feedparser-entry, eller "" om inget datum går att läsa.
    Prioriterar feedparser's *_parsed (struct_time, UTC) men kan även parse:a text.
    """
    for attr in ("published_parsed", "updated_parsed"):
        st = _get(entry, attr)
        if st:
            try:
                ts = calendar.timegm(st)
                return iso_utc(datetime.datetime.fromtimestamp(ts, datetime.timezone.utc))
            except (TypeError, ValueError, OverflowError):
                pass

    for attr in ("published", "updated"):
        s = _get(entry, attr)
        if s:
            try:
                return iso_utc(parsedate_to_datetime(s))
            except (TypeError, ValueError):
                pass
    return ""


def _get(obj: Any, key: str) -> Optional[Any]:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)
