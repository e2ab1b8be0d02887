# knowledge_store.py
# In-process stand-in for the FAQ / health entry / alert tables.
# Each collection offers full-text ranking, trigram similarity and substring search.

import json
import logging
import os
from collections import Counter
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Callable, Generic, Iterable, TypeVar

from text_processing import (
    full_text_rank,
    lexemes,
    normalize_rank,
    tokenize,
    trigram_similarity,
)

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a backing collection cannot be queried."""


# ------------------ records ------------------

@dataclass(frozen=True)
class FaqRecord:
    question: str
    answer: str
    language: str = "en"
    tags: str = ""
    id: str | None = None


@dataclass(frozen=True)
class HealthEntry:
    title: str
    content: str
    category: str = ""
    risk_level: str | None = None
    tags: str = ""
    id: str | None = None


@dataclass(frozen=True)
class HealthAlert:
    title: str
    description: str
    alert_type: str = "general"
    priority: int = 0
    is_active: bool = True
    expires_at: datetime | None = None
    id: str | None = None

    def is_live(self, now: datetime | None = None) -> bool:
        if not self.is_active:
            return False
        if self.expires_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        expires = self.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return expires >= now


R = TypeVar("R")


@dataclass
class Match(Generic[R]):
    record: R
    score: float
    rank: float = 0.0
    similarity: float = 0.0


@dataclass
class _Doc(Generic[R]):
    record: R
    title: str
    body: str
    title_counts: Counter = field(default_factory=Counter)
    body_counts: Counter = field(default_factory=Counter)


# ------------------ collection ------------------

class Collection(Generic[R]):
    """
    A searchable set of records.

    ``title_field`` / ``body_field`` name the record attributes that play the
    role of the indexed columns.
    """

    def __init__(self, records: Iterable[R], title_field: str, body_field: str):
        self.title_field = title_field
        self.body_field = body_field
        self._docs: list[_Doc[R]] = []
        for record in records:
            self.add(record)

    def add(self, record: R) -> None:
        title = getattr(record, self.title_field) or ""
        body = getattr(record, self.body_field) or ""
        self._docs.append(_Doc(
            record=record,
            title=title,
            body=body,
            title_counts=Counter(lexemes(title)),
            body_counts=Counter(lexemes(body)),
        ))

    def records(self) -> list[R]:
        return [d.record for d in self._docs]

    def __len__(self) -> int:
        return len(self._docs)

    def _iter(self, where: Callable[[R], bool] | None):
        for doc in self._docs:
            if where is None or where(doc.record):
                yield doc

    def match(
        self,
        query: str,
        similarity_threshold: float,
        where: Callable[[R], bool] | None = None,
    ) -> list[Match[R]]:
        """
        Full-text OR trigram-similar records, best first.

        score = max(rank / (rank + 1), title similarity), both in [0,1].
        """
        terms = lexemes(query)
        matches = []
        for doc in self._iter(where):
            rank = full_text_rank(terms, doc.title_counts, doc.body_counts) if terms else 0.0
            sim = trigram_similarity(query, doc.title)
            if rank <= 0 and sim < similarity_threshold:
                continue
            score = max(normalize_rank(rank), sim)
            matches.append(Match(doc.record, score, rank, sim))
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches

    def similar(
        self,
        query: str,
        limit: int,
        where: Callable[[R], bool] | None = None,
    ) -> list[Match[R]]:
        """Trigram similarity against title and body over up to ``limit`` records."""
        matches = []
        for i, doc in enumerate(self._iter(where)):
            if i >= limit:
                break
            sim = max(trigram_similarity(query, doc.title), trigram_similarity(query, doc.body))
            if sim > 0:
                matches.append(Match(doc.record, sim, 0.0, sim))
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches

    def containing(self, query: str, where: Callable[[R], bool] | None = None) -> list[R]:
        """Case-insensitive substring match: whole query first, then any keyword in the title."""
        q = (query or "").strip().lower()
        if not q:
            return []
        docs = list(self._iter(where))

        hits = [d.record for d in docs if q in d.title.lower() or q in d.body.lower()]
        if hits:
            return hits

        keywords = [t for t in tokenize(q) if len(t) >= 3]
        if not keywords:
            return []
        return [d.record for d in docs if any(k in d.title.lower() for k in keywords)]


# ------------------ store ------------------

def _load_json_list(path: str | None) -> list[dict]:
    if not path or not os.path.exists(path):
        return []
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise StoreError(f"{path}: expected a JSON list of records")
    return data


def parse_timestamp(value: str) -> datetime:
    """ISO 8601 timestamp; a trailing ``Z`` is read as UTC."""
    value = value.strip()
    if value[-1:] in ("Z", "z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _build(cls, row: dict):
    names = {f.name for f in fields(cls)}
    kwargs = {k: v for k, v in row.items() if k in names}
    if isinstance(kwargs.get("tags"), list):
        kwargs["tags"] = ",".join(kwargs["tags"])
    if isinstance(kwargs.get("expires_at"), str):
        kwargs["expires_at"] = parse_timestamp(kwargs["expires_at"])
    return cls(**kwargs)


class KnowledgeStore:
    def __init__(
        self,
        faqs: Iterable[FaqRecord] = (),
        entries: Iterable[HealthEntry] = (),
        alerts: Iterable[HealthAlert] = (),
    ):
        self.faqs: Collection[FaqRecord] = Collection(faqs, "question", "answer")
        self.entries: Collection[HealthEntry] = Collection(entries, "title", "content")
        self.alerts: Collection[HealthAlert] = Collection(alerts, "title", "description")

    @classmethod
    def from_files(cls, faq_path: str, entries_path: str, alerts_path: str) -> "KnowledgeStore":
        store = cls(
            faqs=[_build(FaqRecord, r) for r in _load_json_list(faq_path)],
            entries=[_build(HealthEntry, r) for r in _load_json_list(entries_path)],
            alerts=[_build(HealthAlert, r) for r in _load_json_list(alerts_path)],
        )
        logger.info(
            "Knowledge store loaded: %d FAQs, %d health entries, %d alerts",
            len(store.faqs), len(store.entries), len(store.alerts),
        )
        return store

    def active_alerts(self, now: datetime | None = None) -> list[HealthAlert]:
        live = [a for a in self.alerts.records() if a.is_live(now)]
        return sorted(live, key=lambda a: a.priority, reverse=True)

    def tagged_faqs(self, language: str = "en") -> list[FaqRecord]:
        return [f for f in self.faqs.records() if f.tags and f.language == language]

    def tagged_entries(self) -> list[HealthEntry]:
        return [e for e in self.entries.records() if e.tags]

    def entries_in(self, category: str | None = None) -> list[HealthEntry]:
        """Health entries, optionally restricted to one category (case-insensitive)."""
        entries = self.entries.records()
        if not category:
            return entries
        wanted = category.strip().lower()
        return [e for e in entries if (e.category or "").lower() == wanted]
