# retrieval.py
# The three independent answer sources: FAQs, knowledge entries and alerts.

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Generic, TypeVar

from config import settings
from knowledge_store import (
    Collection,
    FaqRecord,
    HealthAlert,
    HealthEntry,
    KnowledgeStore,
    StoreError,
)
from translation import CANONICAL_LANGUAGE, TranslationGateway

logger = logging.getLogger(__name__)

ALERT_MARKER = "🚨 Health Alert:"


class SourceTag(str, Enum):
    FAQ = "faq"
    KNOWLEDGE_ENTRY = "knowledge_entry"
    ALERT = "alert"


class MatchTier(str, Enum):
    PRIMARY = "primary"
    TRIGRAM = "trigram"
    CONTAINS = "contains"


# ------------------ candidates ------------------

@dataclass(frozen=True)
class FaqCandidate:
    text: str
    language: str
    confidence: float
    tier: MatchTier
    source: SourceTag = SourceTag.FAQ


@dataclass(frozen=True)
class KnowledgeEntryCandidate:
    text: str
    language: str
    confidence: float
    tier: MatchTier
    category: str = ""
    risk_level: str | None = None
    source: SourceTag = SourceTag.KNOWLEDGE_ENTRY


@dataclass(frozen=True)
class AlertCandidate:
    text: str
    language: str
    confidence: float
    tier: MatchTier
    priority: int = 0
    source: SourceTag = SourceTag.ALERT


Candidate = FaqCandidate | KnowledgeEntryCandidate | AlertCandidate

R = TypeVar("R")


@dataclass
class Thresholds:
    similarity: float = settings.SIMILARITY_THRESHOLD
    trigram_floor: float = settings.TRIGRAM_FLOOR
    contains_confidence: float = settings.CONTAINS_CONFIDENCE
    loose_limit: int = settings.LOOSE_CANDIDATE_LIMIT


# ------------------ sources ------------------

class RetrievalSource(Generic[R]):
    """
    Shared search flow: translate in, match with fallbacks, translate out.

    Subclasses pick the collection and shape the winning record.
    """

    tag: SourceTag

    def __init__(
        self,
        store: KnowledgeStore,
        gateway: TranslationGateway,
        thresholds: Thresholds | None = None,
    ):
        self.store = store
        self.gateway = gateway
        self.thresholds = thresholds or Thresholds()

    def collection(self) -> Collection[R]:
        raise NotImplementedError

    def where(self) -> Callable[[R], bool] | None:
        return None

    async def shape(self, record: R, confidence: float, tier: MatchTier, user_lang: str) -> Candidate:
        raise NotImplementedError

    def best_match(self, query: str) -> tuple[R, float, MatchTier] | None:
        collection = self.collection()
        where = self.where()

        primary = collection.match(query, self.thresholds.similarity, where=where)
        if primary:
            return primary[0].record, primary[0].score, MatchTier.PRIMARY

        loose = collection.similar(query, self.thresholds.loose_limit, where=where)
        if loose and loose[0].score > self.thresholds.trigram_floor:
            return loose[0].record, loose[0].score, MatchTier.TRIGRAM

        contained = collection.containing(query, where=where)
        if contained:
            return contained[0], self.thresholds.contains_confidence, MatchTier.CONTAINS

        return None

    async def search(self, query_text: str, user_lang: str) -> Candidate | None:
        if not query_text or not query_text.strip():
            return None

        canonical = query_text
        if user_lang != CANONICAL_LANGUAGE:
            canonical = await self.gateway.translate(query_text, CANONICAL_LANGUAGE, user_lang)

        try:
            found = self.best_match(canonical.lower())
        except StoreError as e:
            logger.error("%s search failed: %s", self.tag.value, e)
            return None

        if found is None:
            return None

        record, score, tier = found
        logger.debug("%s matched via %s tier with score %.3f", self.tag.value, tier.value, score)
        return await self.shape(record, min(max(score, 0.0), 1.0), tier, user_lang)


class FaqSource(RetrievalSource[FaqRecord]):
    tag = SourceTag.FAQ

    def collection(self) -> Collection[FaqRecord]:
        return self.store.faqs

    async def shape(self, record: FaqRecord, confidence: float, tier: MatchTier, user_lang: str) -> Candidate:
        text = await self.gateway.translate(record.answer, user_lang, record.language)
        return FaqCandidate(text=text, language=record.language, confidence=confidence, tier=tier)


class KnowledgeEntrySource(RetrievalSource[HealthEntry]):
    tag = SourceTag.KNOWLEDGE_ENTRY

    def collection(self) -> Collection[HealthEntry]:
        return self.store.entries

    async def shape(self, record: HealthEntry, confidence: float, tier: MatchTier, user_lang: str) -> Candidate:
        shown = await self.gateway.translate_fields(record, ["content", "category"], user_lang, CANONICAL_LANGUAGE)
        return KnowledgeEntryCandidate(
            text=shown.content,
            language=CANONICAL_LANGUAGE,
            confidence=confidence,
            tier=tier,
            category=shown.category,
            risk_level=record.risk_level,
        )


class AlertSource(RetrievalSource[HealthAlert]):
    tag = SourceTag.ALERT

    def collection(self) -> Collection[HealthAlert]:
        return self.store.alerts

    def where(self) -> Callable[[HealthAlert], bool]:
        now = datetime.now(timezone.utc)
        return lambda alert: alert.is_live(now)

    async def shape(self, record: HealthAlert, confidence: float, tier: MatchTier, user_lang: str) -> Candidate:
        shown = await self.gateway.translate_fields(record, ["title", "description"], user_lang, CANONICAL_LANGUAGE)
        return AlertCandidate(
            text=f"{ALERT_MARKER} {shown.title}\n{shown.description}",
            language=CANONICAL_LANGUAGE,
            confidence=confidence,
            tier=tier,
            priority=record.priority,
        )
