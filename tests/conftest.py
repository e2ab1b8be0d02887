"""Shared fixtures: fake translation providers, a small store, temp model dirs."""

import pytest

from assistant import HealthAssistant
from knowledge_store import FaqRecord, HealthAlert, HealthEntry, KnowledgeStore
from naive_bayes import HealthClassifier
from translation import TranslationCache, TranslationGateway

HINDI = {
    ("hi", "en", "मुझे बुखार और सिरदर्द है"): "I have fever and headache",
    ("en", "hi", "Rest and hydrate"): "आराम करें और पानी पिएं",
}


class FakeProvider:
    """Dictionary-backed provider that records every call."""

    def __init__(self, table=None):
        self.table = dict(table or {})
        self.calls = []

    async def translate(self, text, target, source):
        self.calls.append((source, target, text))
        return self.table.get((source, target, text), f"[{target}] {text}")


class FailingProvider:
    def __init__(self, exc=None):
        self.exc = exc or ConnectionError("translator unreachable")
        self.calls = 0

    async def translate(self, text, target, source):
        self.calls += 1
        raise self.exc


@pytest.fixture
def fake_provider():
    return FakeProvider(HINDI)


@pytest.fixture
def gateway(fake_provider):
    return TranslationGateway(provider=fake_provider, cache=TranslationCache())


@pytest.fixture
def fever_store():
    return KnowledgeStore(faqs=[FaqRecord(question="fever symptoms", answer="Rest and hydrate", language="en")])


@pytest.fixture
def sample_store():
    return KnowledgeStore(
        faqs=[
            FaqRecord(question="How can I prevent malaria?",
                      answer="Sleep under mosquito nets, remove stagnant water around your home and use mosquito repellents.",
                      tags="malaria,prevention"),
            FaqRecord(question="What are the symptoms of dengue?",
                      answer="High fever, severe headache, joint pain and rash.",
                      tags="dengue,symptom"),
        ],
        entries=[
            HealthEntry(title="Cholera",
                        content="Cholera causes severe watery diarrhea and dehydration. Start ORS immediately.",
                        category="Diseases", risk_level="CRITICAL", tags="cholera"),
        ],
        alerts=[
            HealthAlert(title="Dengue outbreak warning",
                        description="Dengue cases are rising. Remove standing water.",
                        priority=2),
        ],
    )


@pytest.fixture
def model_dir(tmp_path):
    return str(tmp_path / "models")


@pytest.fixture
def assistant(fever_store, gateway, model_dir):
    return HealthAssistant(fever_store, gateway, HealthClassifier(fever_store, model_dir))


@pytest.fixture
def library_store():
    return KnowledgeStore(entries=[
        HealthEntry(title="Tetanus booster", content="One dose every 10 years.", category="Vaccines", id="v-2"),
        HealthEntry(title="Hygiene", content="Wash hands with soap.", category="Preventive health", id="p-1"),
        HealthEntry(title="BCG", content="Given at birth against TB.", category="Vaccines", id="v-1"),
        HealthEntry(title="Cholera", content="Drink ORS.", category="Diseases", risk_level="CRITICAL", id="d-1"),
    ])


@pytest.fixture
def library(library_store, gateway, model_dir):
    return HealthAssistant(library_store, gateway, HealthClassifier(library_store, model_dir))
