# naive_bayes.py
# Intent and disease classifiers: bag-of-words Multinomial Naive Bayes.

import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from typing import Iterable

import joblib
from sklearn.feature_extraction.text import CountVectorizer
from sklearn.naive_bayes import MultinomialNB
from sklearn.pipeline import Pipeline

from diseases import DISEASE_LABELS, find_disease
from knowledge_store import KnowledgeStore
from text_processing import lexemes

logger = logging.getLogger(__name__)

INTENTS = [
    "symptom_check",
    "prevention",
    "treatment",
    "vaccine_info",
    "emergency",
    "general_info",
    "diagnosis",
]

INTENT_MODEL_FILE = "nb_intent_model.joblib"
DISEASE_MODEL_FILE = "nb_disease_model.joblib"

# Health entry text is clipped before it goes into the disease model
ENTRY_TEXT_LIMIT = 600

SEED_INTENTS = [
    ("I have fever and cough", "symptom_check"),
    ("symptoms of dengue", "symptom_check"),
    ("signs of malaria", "symptom_check"),
    ("I feel sick", "symptom_check"),
    ("how to prevent dengue", "prevention"),
    ("how to avoid malaria", "prevention"),
    ("treatment for fever", "treatment"),
    ("medicine for dengue", "treatment"),
    ("when should I get vaccine", "vaccine_info"),
    ("vaccination schedule", "vaccine_info"),
    ("emergency help", "emergency"),
    ("urgent medical attention", "emergency"),
    ("what is dengue", "general_info"),
    ("tell me about malaria", "general_info"),
    ("do I have dengue", "diagnosis"),
    ("is this malaria", "diagnosis"),
]

SEED_DISEASES = [
    ("high fever headache rash dengue", "dengue"),
    ("joint pain behind eyes dengue", "dengue"),
    ("fever chills shivering malaria", "malaria"),
    ("loss of smell cough covid", "covid"),
    ("persistent cough blood sputum tuberculosis", "tuberculosis"),
    ("prolonged fever typhoid salmonella", "typhoid"),
    ("severe diarrhea dehydration cholera", "cholera"),
    ("cough sore throat flu", "flu"),
    ("runny nose sneezing cold", "common_cold"),
]

MODEL_TYPES = ("intent", "disease")


@dataclass(frozen=True)
class Classification:
    label: str
    confidence: float


@dataclass(frozen=True)
class TrainingExample:
    text: str
    label: str
    type: str


def intent_from_tags(tags: str) -> str | None:
    if not tags:
        return None
    t = tags.lower()
    if "symptom" in t:
        return "symptom_check"
    if "prevent" in t:
        return "prevention"
    if "treat" in t:
        return "treatment"
    if "vaccin" in t:
        return "vaccine_info"
    if "emergency" in t or "urgent" in t:
        return "emergency"
    if "diagnos" in t:
        return "diagnosis"
    return "general_info"


def disease_from_tags(tags: str) -> str | None:
    if not tags:
        return None
    return find_disease(tags)


def _new_model() -> Pipeline:
    return Pipeline([
        ("bow", CountVectorizer(analyzer=lexemes)),
        ("nb", MultinomialNB(alpha=1.0)),
    ])


def _fit(examples: list[tuple[str, str]]) -> Pipeline:
    model = _new_model()
    texts = [text for text, _ in examples]
    labels = [label for _, label in examples]
    model.fit(texts, labels)
    return model


def _ranked(model: Pipeline, text: str) -> list[tuple[str, float]]:
    probs = model.predict_proba([text])[0]
    pairs = [(str(label), float(p)) for label, p in zip(model.classes_, probs)]
    # ties resolved by label so the output is stable
    return sorted(pairs, key=lambda pair: (-pair[1], pair[0]))


def _stage(path: str, payload: dict) -> str:
    """Dump ``payload`` to a temp file next to ``path`` and return the temp path."""
    folder = os.path.dirname(path) or "."
    os.makedirs(folder, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=folder, prefix=".", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            joblib.dump(payload, f)
            f.flush()
            os.fsync(f.fileno())
    except BaseException:
        os.unlink(tmp_path)
        raise
    return tmp_path


def _write_atomic(snapshots: list[tuple[str, dict]]) -> None:
    """
    Write every ``(path, payload)`` pair to disk, or none of them.

    All payloads are staged first; renames only start once every temp file
    is complete, so a failed dump leaves the previous snapshots untouched.
    """
    staged = []
    try:
        for path, payload in snapshots:
            staged.append((_stage(path, payload), path))
    except BaseException:
        for tmp_path, _ in staged:
            os.unlink(tmp_path)
        raise
    for tmp_path, path in staged:
        os.replace(tmp_path, path)


class HealthClassifier:
    """
    Owns both Naive Bayes models and their on-disk snapshots.

    Models are only ever replaced by ``train()`` / ``retrain()``; live traffic
    never updates them. An untrained instance answers ``None`` from the
    classify methods instead of raising.
    """

    def __init__(self, store: KnowledgeStore, model_dir: str):
        self.store = store
        self.model_dir = model_dir
        self.intent_model_path = os.path.join(model_dir, INTENT_MODEL_FILE)
        self.disease_model_path = os.path.join(model_dir, DISEASE_MODEL_FILE)

        self._intent_model: Pipeline | None = None
        self._disease_model: Pipeline | None = None
        self._extra: dict[str, list[tuple[str, str]]] = {"intent": [], "disease": []}
        self._train_lock = threading.Lock()
        self.trained = False

    # ------------------ corpus ------------------

    def build_corpus(
        self,
        extra: dict[str, list[tuple[str, str]]] | None = None,
    ) -> tuple[list[tuple[str, str]], list[tuple[str, str]]]:
        extra = self._extra if extra is None else extra
        intent_examples = [(text.lower(), label) for text, label in SEED_INTENTS]
        disease_examples = [(text.lower(), label) for text, label in SEED_DISEASES]

        tagged_faqs = self.store.tagged_faqs("en")
        for faq in tagged_faqs:
            intent = intent_from_tags(faq.tags)
            if intent:
                intent_examples.append((faq.question.lower(), intent))

        tagged_entries = self.store.tagged_entries()
        for entry in tagged_entries:
            disease = disease_from_tags(entry.tags)
            if disease:
                text = f"{entry.title} {entry.content}".lower()
                disease_examples.append((text[:ENTRY_TEXT_LIMIT], disease))

        intent_examples.extend(extra["intent"])
        disease_examples.extend(extra["disease"])

        logger.info(
            "Training uses %d intent seeds, %d disease seeds, %d tagged FAQs, %d tagged health entries, %d retrain examples",
            len(SEED_INTENTS), len(SEED_DISEASES), len(tagged_faqs), len(tagged_entries),
            len(extra["intent"]) + len(extra["disease"]),
        )
        return intent_examples, disease_examples

    # ------------------ training ------------------

    def _fit_and_commit(self, extra: dict[str, list[tuple[str, str]]]) -> None:
        # caller holds the train lock; nothing on self changes unless the save succeeds
        intent_examples, disease_examples = self.build_corpus(extra)
        intent_model = _fit(intent_examples)
        disease_model = _fit(disease_examples)

        self._save(intent_model, disease_model, extra)

        self._intent_model = intent_model
        self._disease_model = disease_model
        self._extra = extra
        self.trained = True

    def train(self) -> dict:
        """Rebuild both models from scratch and overwrite the saved snapshots."""
        with self._train_lock:
            self._fit_and_commit(self._extra)

        logger.info("Naive Bayes classifiers trained and saved to %s", self.model_dir)
        return self.stats()

    def retrain(self, batch: Iterable[dict | TrainingExample]) -> int:
        """
        Merge a batch of (text, label, type) examples into the corpus and
        retrain everything. Returns the number of examples added.

        The batch is kept only if both snapshots are written; on failure the
        classifier is left exactly as it was.
        """
        parsed = [self._validate(item) for item in batch]
        with self._train_lock:
            extra = {kind: list(examples) for kind, examples in self._extra.items()}
            for example in parsed:
                extra[example.type].append((example.text.lower(), example.label))
            self._fit_and_commit(extra)

        logger.info("Retrained Naive Bayes classifiers with %d new examples", len(parsed))
        return len(parsed)

    @staticmethod
    def _validate(item: dict | TrainingExample) -> TrainingExample:
        if isinstance(item, dict):
            item = TrainingExample(
                text=str(item.get("text") or ""),
                label=str(item.get("label") or ""),
                type=str(item.get("type") or ""),
            )
        if not item.text.strip():
            raise ValueError("Training example text must not be empty")
        if item.type not in MODEL_TYPES:
            raise ValueError(f"Training example type must be one of {MODEL_TYPES}, got {item.type!r}")
        allowed = INTENTS if item.type == "intent" else DISEASE_LABELS
        if item.label not in allowed:
            raise ValueError(f"Unknown {item.type} label {item.label!r}")
        return item

    # ------------------ persistence ------------------

    def _save(
        self,
        intent_model: Pipeline,
        disease_model: Pipeline,
        extra: dict[str, list[tuple[str, str]]],
    ) -> None:
        _write_atomic([
            (self.intent_model_path, {"model": intent_model, "examples": list(extra["intent"])}),
            (self.disease_model_path, {"model": disease_model, "examples": list(extra["disease"])}),
        ])

    def load(self) -> bool:
        """Load saved snapshots if both exist. Returns whether the classifier is now trained."""
        if not (os.path.exists(self.intent_model_path) and os.path.exists(self.disease_model_path)):
            logger.info("No saved Naive Bayes models in %s; classifier stays untrained", self.model_dir)
            return False

        try:
            intent_snapshot = joblib.load(self.intent_model_path)
            disease_snapshot = joblib.load(self.disease_model_path)
            intent_model = intent_snapshot["model"]
            disease_model = disease_snapshot["model"]
        except Exception:
            logger.exception("Failed to load Naive Bayes models from %s", self.model_dir)
            return False

        with self._train_lock:
            self._intent_model = intent_model
            self._disease_model = disease_model
            self._extra = {
                "intent": list(intent_snapshot.get("examples", [])),
                "disease": list(disease_snapshot.get("examples", [])),
            }
            self.trained = True

        logger.info("Naive Bayes models loaded from %s", self.model_dir)
        return True

    # ------------------ classification ------------------

    def classify_intent(self, text: str) -> Classification | None:
        model = self._intent_model
        if not self.trained or model is None:
            return None
        label, confidence = _ranked(model, (text or "").lower())[0]
        return Classification(label, confidence)

    def classify_disease(self, text: str) -> Classification | None:
        model = self._disease_model
        if not self.trained or model is None:
            return None
        label, confidence = _ranked(model, (text or "").lower())[0]
        return Classification(label, confidence)

    def get_classifications(self, text: str) -> list[dict]:
        """Every label of both models with its posterior, highest first."""
        if not self.trained or not text:
            return []
        q = text.lower()
        results = []
        for kind, model in (("intent", self._intent_model), ("disease", self._disease_model)):
            if model is None:
                continue
            results.extend({"label": label, "value": value, "type": kind} for label, value in _ranked(model, q))
        return sorted(results, key=lambda c: c["value"], reverse=True)

    def stats(self) -> dict:
        return {
            "trained": self.trained,
            "intents": len(INTENTS),
            "diseases": len(DISEASE_LABELS),
            "intent_model_exists": os.path.exists(self.intent_model_path),
            "disease_model_exists": os.path.exists(self.disease_model_path),
            "retrain_examples": len(self._extra["intent"]) + len(self._extra["disease"]),
        }
