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

import logging
from typing import Optional

from tinydb import Query, TinyDB

from feedupdater.models import FeedSnapshot
from persistence import PersistError

logger = logging.getLogger(__name__)


class TinyDBStore:
    """
    TinyDB-backed store (JSON file). Implements SnapshotStore.
    Alla källor i tabellen 'snapshots', nyckel = sourceUrl.
    """

    def __init__(self, path: str = "snapshots.json"):
        self.path = path

    def _db(self) -> TinyDB:
        return TinyDB(self.path, ensure_ascii=False)

    def load(self, source_url: str) -> Optional[FeedSnapshot]:
        db = self._db()
        S = Query()
        try:
            res = db.table("snapshots").search(S.sourceUrl == source_url)
        finally:
            db.close()
        return FeedSnapshot.from_dict(dict(res[0])) if res else None

    def save(self, source_url: str, snapshot: FeedSnapshot) -> None:
        doc = snapshot.to_dict()
        doc["sourceUrl"] = source_url
        try:
            db = self._db()
            S = Query()
            try:
                db.table("snapshots").upsert(doc, S.sourceUrl == source_url)
            finally:
                db.close()
        except (OSError, ValueError, TypeError) as e:
            raise PersistError(source_url, str(e)) from e
        logger.info("Sparade %s i %s", source_url, self.path)
