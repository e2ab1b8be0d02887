# assistant.py
# One object per process that answers, classifies and (re)trains.

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

import languages
from arbitration import ArbitrationEngine
from config import Settings, settings as default_settings
from diseases import display_name, recommendation
from knowledge_store import KnowledgeStore
from naive_bayes import HealthClassifier
from retrieval import AlertSource, FaqSource, KnowledgeEntrySource, Thresholds
from translation import CANONICAL_LANGUAGE, TranslationGateway, TranslationProvider

logger = logging.getLogger(__name__)

# Names the HTTP layer exposes for each answer source
RESPONSE_SOURCE_NAMES = {
    "faq": "faq",
    "knowledge_entry": "health_entry",
    "alert": "alert",
    "fallback": "fallback",
}

NOT_TRAINED_MESSAGE = "Classifier not trained. Please train first."

DISCLAIMER = (
    "⚠️ This is an AI prediction for informational purposes only. "
    "Please consult a qualified healthcare professional for accurate diagnosis."
)

EMERGENCY_ADVICE = "🚨 EMERGENCY: Call emergency services (108/112) immediately or visit the nearest hospital."

# Health entries in this category are listed as vaccines
VACCINE_CATEGORY = "Vaccines"


def not_trained() -> dict:
    return {"success": False, "trained": False, "message": NOT_TRAINED_MESSAGE}


def confidence_level(confidence: float) -> str:
    if confidence > 0.8:
        return "High"
    if confidence > 0.6:
        return "Medium"
    return "Low"


def combined_recommendation(intent: str, disease: str, confidence: float) -> str:
    name = display_name(disease)
    if intent == "emergency":
        return EMERGENCY_ADVICE
    if intent in ("symptom_check", "diagnosis"):
        if confidence > 0.7:
            return f"Based on symptoms, possible {name}. {recommendation(disease, 'high')}"
        return f"Symptoms suggest possible {name}, but confidence is low. Consult a doctor for accurate diagnosis."
    if intent == "prevention":
        return f"For {name} prevention: use preventive measures, maintain hygiene and avoid risk factors."
    if intent == "treatment":
        return f"For {name} treatment: consult a healthcare professional. Do not self-medicate."
    return "Consult a healthcare professional for personalized advice."


@dataclass(frozen=True)
class Query:
    text: str
    language: str
    canonical_text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def describe(self) -> dict:
        return {"original": self.text, "english": self.canonical_text, "language": self.language}


def build_engine(
    store: KnowledgeStore,
    gateway: TranslationGateway,
    thresholds: Thresholds | None = None,
    min_accept_score: float = default_settings.MIN_ACCEPT_SCORE,
    source_timeout: float | None = default_settings.SOURCE_TIMEOUT_SECONDS,
) -> ArbitrationEngine:
    """The FAQ, knowledge entry and alert sources behind one arbitration engine."""
    return ArbitrationEngine(
        [
            FaqSource(store, gateway, thresholds),
            KnowledgeEntrySource(store, gateway, thresholds),
            AlertSource(store, gateway, thresholds),
        ],
        min_accept_score=min_accept_score,
        source_timeout=source_timeout,
    )


class HealthAssistant:
    def __init__(
        self,
        store: KnowledgeStore,
        gateway: TranslationGateway,
        classifier: HealthClassifier,
        engine: ArbitrationEngine | None = None,
    ):
        self.store = store
        self.gateway = gateway
        self.classifier = classifier
        self.engine = engine or build_engine(store, gateway)

    @classmethod
    def from_settings(
        cls,
        settings: Settings = default_settings,
        provider: TranslationProvider | None = None,
    ) -> "HealthAssistant":
        store = KnowledgeStore.from_files(settings.FAQ_PATH, settings.HEALTH_ENTRIES_PATH, settings.ALERTS_PATH)
        gateway = TranslationGateway(provider=provider)
        classifier = HealthClassifier(store, settings.MODEL_DIR)
        classifier.load()
        thresholds = Thresholds(
            similarity=settings.SIMILARITY_THRESHOLD,
            trigram_floor=settings.TRIGRAM_FLOOR,
            contains_confidence=settings.CONTAINS_CONFIDENCE,
            loose_limit=settings.LOOSE_CANDIDATE_LIMIT,
        )
        engine = build_engine(
            store,
            gateway,
            thresholds,
            min_accept_score=settings.MIN_ACCEPT_SCORE,
            source_timeout=settings.SOURCE_TIMEOUT_SECONDS,
        )
        return cls(store, gateway, classifier, engine=engine)

    # ------------------ helpers ------------------

    @staticmethod
    def resolve_language(text: str, lang: str | None) -> str:
        if not lang or lang == "auto":
            return languages.detect(text)
        return languages.normalize_language(lang)

    async def build_query(self, text: str, lang: str | None = "auto") -> Query:
        language = self.resolve_language(text, lang)
        canonical = text
        if language != CANONICAL_LANGUAGE:
            canonical = await self.gateway.translate(text, CANONICAL_LANGUAGE, language)
        return Query(text=text, language=language, canonical_text=canonical)

    def _advisory(self, canonical_text: str) -> dict:
        out = {}
        intent = self.classifier.classify_intent(canonical_text)
        if intent is not None:
            out["intent"] = {"label": intent.label, "confidence": intent.confidence}
        disease = self.classifier.classify_disease(canonical_text)
        if disease is not None:
            out["disease"] = {"label": disease.label, "confidence": disease.confidence}
        return out

    # ------------------ answering ------------------

    async def resolve_query(self, message: str, lang: str | None = "auto") -> dict:
        message = (message or "").strip()
        if not message:
            raise ValueError("Message required")

        # translating once up front puts the canonical text in the cache for every source
        query = await self.build_query(message, lang)
        answer = await self.engine.resolve(query.text, query.language)

        result = {
            "reply": answer.text,
            "language": query.language,
            "source": RESPONSE_SOURCE_NAMES[answer.source],
            "confidence": answer.confidence,
            "translated": answer.translated,
        }
        result.update(self._advisory(query.canonical_text))
        logger.info(
            "Resolved %s query via %s (confidence=%s, tier=%s)",
            query.language, result["source"], answer.confidence, answer.tier,
        )
        return result

    async def list_alerts(self, lang: str = "en") -> list[dict]:
        language = languages.normalize_language(lang)
        alerts = self.store.active_alerts()
        shown = await asyncio.gather(
            *(self.gateway.translate_fields(a, ["title", "description"], language, CANONICAL_LANGUAGE) for a in alerts)
        )
        return [
            {
                "id": a.id,
                "title": a.title,
                "description": a.description,
                "alert_type": a.alert_type,
                "priority": a.priority,
            }
            for a in shown
        ]

    async def list_entries(self, lang: str = "en", category: str | None = None) -> list[dict]:
        language = languages.normalize_language(lang)
        entries = self.store.entries_in(category)
        shown = await asyncio.gather(
            *(self.gateway.translate_fields(e, ["title", "content", "category"], language, CANONICAL_LANGUAGE)
              for e in entries)
        )
        return [
            {
                "id": e.id,
                "title": e.title,
                "content": e.content,
                "risk_level": e.risk_level,
                "category": e.category,
            }
            for e in shown
        ]

    async def list_vaccines(self, lang: str = "en") -> list[dict]:
        language = languages.normalize_language(lang)
        vaccines = sorted(self.store.entries_in(VACCINE_CATEGORY), key=lambda e: e.title)
        shown = await asyncio.gather(
            *(self.gateway.translate_fields(v, ["title", "content"], language, CANONICAL_LANGUAGE) for v in vaccines)
        )
        return [{"id": v.id, "title": v.title, "content": v.content} for v in shown]

    # ------------------ classification ------------------

    async def classify_intent(self, text: str, lang: str | None = "auto") -> dict:
        text = (text or "").strip()
        if not text:
            raise ValueError("Text is required")
        query = await self.build_query(text, lang)

        result = self.classifier.classify_intent(query.canonical_text)
        if result is None:
            return not_trained()

        alternatives = [c for c in self.classifier.get_classifications(query.canonical_text) if c["type"] == "intent"]
        return {
            "success": True,
            "query": query.describe(),
            "intent": result.label,
            "confidence": result.confidence,
            "alternatives": alternatives[:3],
        }

    async def classify_disease(self, symptoms: str | list[str], lang: str | None = "auto") -> dict:
        if isinstance(symptoms, (list, tuple)):
            symptoms = " ".join(str(s) for s in symptoms if s)
        symptoms = (symptoms or "").strip()
        if not symptoms:
            raise ValueError("Symptoms are required")
        query = await self.build_query(symptoms, lang)

        result = self.classifier.classify_disease(query.canonical_text)
        if result is None:
            return not_trained()

        level = confidence_level(result.confidence)
        alternatives = [c for c in self.classifier.get_classifications(query.canonical_text) if c["type"] == "disease"]
        return {
            "success": True,
            "symptoms": query.describe(),
            "disease": result.label,
            "confidence": result.confidence,
            "confidenceLevel": level,
            "alternatives": alternatives[:3],
            "recommendation": recommendation(result.label, level),
            "disclaimer": DISCLAIMER,
        }

    async def analyze(self, text: str, lang: str | None = "auto") -> dict:
        text = (text or "").strip()
        if not text:
            raise ValueError("Text is required")
        query = await self.build_query(text, lang)

        intent = self.classifier.classify_intent(query.canonical_text)
        disease = self.classifier.classify_disease(query.canonical_text)
        if intent is None or disease is None:
            return not_trained()

        ranked = self.classifier.get_classifications(query.canonical_text)
        return {
            "success": True,
            "query": query.describe(),
            "intent": {
                "primary": intent.label,
                "confidence": intent.confidence,
                "alternatives": [c for c in ranked if c["type"] == "intent"][:3],
            },
            "disease": {
                "primary": disease.label,
                "confidence": disease.confidence,
                "alternatives": [c for c in ranked if c["type"] == "disease"][:3],
            },
            "recommendation": combined_recommendation(intent.label, disease.label, disease.confidence),
        }

    # ------------------ training ------------------

    def train(self) -> dict:
        return {"success": True, "stats": self.classifier.train()}

    def retrain(self, batch: list[dict]) -> dict:
        added = self.classifier.retrain(batch)
        return {"success": True, "newDataPoints": added}

    def stats(self) -> dict:
        return self.classifier.stats()
