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

import base64
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from feedupdater.models import FeedSnapshot


class StoreError(Exception):
    pass


class PersistError(StoreError):
    def __init__(self, source_url: str, message: str):
        super().__init__(f"Failed to save snapshot for {source_url}: {message}")
        self.source_url = source_url


class SnapshotStore(Protocol):
    def load(self, source_url: str) -> Optional[FeedSnapshot]: ...

    def save(self, source_url: str, snapshot: FeedSnapshot) -> None: ...


def source_key(source_url: str) -> str:
    """Filnamnssäker nyckel: base64 av URL:en med / + = ersatta av _."""
    encoded = base64.b64encode(source_url.encode("utf-8")).decode("ascii")
    return encoded.replace("/", "_").replace("+", "_").replace("=", "_")


def _expand_path(p: str) -> str:
    # Expand ~ och miljövariabler som $HOME eller ${HOME}
    expanded = os.path.expandvars(os.path.expanduser(p))
    return str(Path(expanded).resolve())


def create_store(cfg: Dict[str, Any]) -> SnapshotStore:
    provider = (cfg.get("provider") or "json").lower()

    if provider == "json":
        from persistence.JsonFileStore import JsonFileStore

        return JsonFileStore(_expand_path(str(cfg.get("path") or "./data")))

    if provider == "tinydb":
        from persistence.TinyDbStore import TinyDBStore

        path = _expand_path(str(cfg.get("path") or "./data/snapshots.json"))
        # Se till att katalogen finns
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        return TinyDBStore(path=path)

    raise ValueError(f"Unsupported store provider: {provider}")
