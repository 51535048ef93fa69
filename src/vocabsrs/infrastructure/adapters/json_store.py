"""
JSON Card Repository — Infrastructure adapter for a single JSON document.

Implements CardRepository on top of one file holding every card. Writes go
through a temp file and ``os.replace`` so a crash never leaves half a file.
"""

import asyncio
import json
import logging
import os
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from vocabsrs.domain.errors import CardNotFoundError, StoreCorruptedError
from vocabsrs.domain.review.models import Card, ReviewStats
from vocabsrs.domain.review.ports import CardRepository

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class JsonCardRepository(CardRepository):
    """
    Stores cards as ``{"version": 1, "cards": {id: record}}``.

    The file is re-read on every call so several processes can share it;
    writes within one process are serialized by a lock.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def load(self, card_id: str) -> ReviewStats:
        card = await self.get_card(card_id)
        return card.review_stats

    async def save(self, card_id: str, stats: ReviewStats) -> None:
        async with self._lock:
            doc = self._read()
            record = doc["cards"].get(card_id)
            if record is None:
                raise CardNotFoundError(card_id)

            new_stats = stats.to_dict()
            if record.get("review_stats") == new_stats:
                logger.debug(f"Stats for {card_id} unchanged; skipping write")
                return

            record["review_stats"] = new_stats
            record["updated_at"] = datetime.now(timezone.utc).isoformat()
            self._write(doc)

    async def get_card(self, card_id: str) -> Card:
        record = self._read()["cards"].get(card_id)
        if record is None:
            raise CardNotFoundError(card_id)
        return Card.from_dict({**record, "id": card_id})

    async def list_cards(self) -> list[Card]:
        cards = self._read()["cards"]
        return [Card.from_dict({**record, "id": cid}) for cid, record in cards.items()]

    async def add_card(self, card: Card) -> str:
        async with self._lock:
            doc = self._read()
            card_id = card.id or uuid.uuid4().hex
            if card_id in doc["cards"]:
                raise ValueError(f"Card id already exists: {card_id}")

            now = datetime.now(timezone.utc)
            record = Card(
                id=card_id,
                word=card.word.strip(),
                meaning=card.meaning.strip(),
                example=card.example.strip(),
                is_starred=card.is_starred,
                created_at=card.created_at or now,
                review_stats=card.review_stats,
            ).to_dict()
            record["updated_at"] = now.isoformat()
            doc["cards"][card_id] = record
            self._write(doc)

        logger.info(f"Added card {card_id} ({card.word!r})")
        return card_id

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"version": STORE_VERSION, "cards": {}}

        try:
            doc = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreCorruptedError(f"Cannot read card store {self.path}: {e}") from e

        if not isinstance(doc, dict) or not isinstance(doc.get("cards"), dict):
            raise StoreCorruptedError(f"Card store {self.path} has no 'cards' mapping")
        return doc

    def _write(self, doc: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".cards-", suffix=".json", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except OSError:
            logger.error(f"Failed to write card store {self.path}")
            Path(tmp_name).unlink(missing_ok=True)
            raise
