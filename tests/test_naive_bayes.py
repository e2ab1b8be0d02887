"""Tests for the intent / disease classifiers and their persistence."""

import os

import pytest

import naive_bayes
from diseases import DISEASE_LABELS, find_disease, recommendation
from knowledge_store import FaqRecord, HealthEntry, KnowledgeStore
from naive_bayes import (
    DISEASE_MODEL_FILE,
    INTENT_MODEL_FILE,
    INTENTS,
    HealthClassifier,
    TrainingExample,
    intent_from_tags,
)


@pytest.fixture
def classifier(sample_store, model_dir):
    return HealthClassifier(sample_store, model_dir)


@pytest.fixture
def trained(classifier):
    classifier.train()
    return classifier


class TestUntrained:
    def test_classify_returns_none(self, classifier):
        assert classifier.classify_intent("how to prevent dengue") is None
        assert classifier.classify_disease("runny nose") is None
        assert classifier.get_classifications("fever") == []

    def test_load_without_files(self, classifier):
        assert classifier.load() is False
        assert classifier.trained is False

    def test_stats(self, classifier):
        assert classifier.stats() == {
            "trained": False,
            "intents": 7,
            "diseases": 8,
            "intent_model_exists": False,
            "disease_model_exists": False,
            "retrain_examples": 0,
        }


class TestTraining:
    def test_labels_come_from_closed_sets(self, trained):
        assert trained.classify_intent("tell me something").label in INTENTS
        assert trained.classify_disease("tell me something").label in DISEASE_LABELS

    def test_prevention_intent(self, trained):
        result = trained.classify_intent("how to prevent dengue")
        assert result.label == "prevention"
        assert 0 < result.confidence <= 1

    def test_common_cold(self, trained):
        assert trained.classify_disease("runny nose sneezing").label == "common_cold"

    def test_train_is_idempotent(self, trained):
        first = trained.classify_intent("medicine for fever")
        trained.train()
        second = trained.classify_intent("medicine for fever")
        assert first.label == second.label
        assert first.confidence == pytest.approx(second.confidence)

    def test_snapshots_written_atomically(self, trained, model_dir):
        assert sorted(os.listdir(model_dir)) == sorted([INTENT_MODEL_FILE, DISEASE_MODEL_FILE])
        stats = trained.stats()
        assert stats["trained"] and stats["intent_model_exists"] and stats["disease_model_exists"]

    def test_reload_from_disk(self, trained, sample_store, model_dir):
        fresh = HealthClassifier(sample_store, model_dir)
        assert fresh.load() is True
        a = trained.classify_disease("severe diarrhea")
        b = fresh.classify_disease("severe diarrhea")
        assert (a.label, a.confidence) == (b.label, pytest.approx(b.confidence))

    def test_corrupt_snapshot_stays_untrained(self, trained, sample_store, model_dir):
        with open(os.path.join(model_dir, INTENT_MODEL_FILE), "wb") as f:
            f.write(b"not a model")
        fresh = HealthClassifier(sample_store, model_dir)
        assert fresh.load() is False
        assert fresh.classify_intent("fever") is None

    def test_corpus_includes_tagged_records(self, classifier):
        intents, diseases = classifier.build_corpus()
        assert ("how can i prevent malaria?", "prevention") in intents
        assert any(label == "cholera" and text.startswith("cholera") for text, label in diseases)

    def test_get_classifications_sorted(self, trained):
        ranked = trained.get_classifications("fever and cough")
        assert len(ranked) == len(INTENTS) + len(DISEASE_LABELS)
        values = [c["value"] for c in ranked]
        assert values == sorted(values, reverse=True)
        assert {c["type"] for c in ranked} == {"intent", "disease"}


class TestRetrain:
    def test_adds_examples_and_persists_them(self, classifier, sample_store, model_dir):
        added = classifier.retrain([
            {"text": "my child has spots all over", "label": "diagnosis", "type": "intent"},
            TrainingExample(text="rice water stool", label="cholera", type="disease"),
        ])
        assert added == 2
        assert classifier.trained
        assert classifier.stats()["retrain_examples"] == 2

        fresh = HealthClassifier(sample_store, model_dir)
        fresh.load()
        assert fresh.stats()["retrain_examples"] == 2

    @pytest.mark.parametrize("item", [
        {"text": "x", "label": "prevention", "type": "symptom"},
        {"text": "x", "label": "measles", "type": "disease"},
        {"text": "x", "label": "dengue", "type": "intent"},
        {"text": "  ", "label": "prevention", "type": "intent"},
    ])
    def test_rejects_bad_examples(self, classifier, item):
        with pytest.raises(ValueError):
            classifier.retrain([item])
        assert classifier.trained is False


class TestHelpers:
    @pytest.mark.parametrize("tags,expected", [
        ("dengue,symptom", "symptom_check"),
        ("malaria,prevention", "prevention"),
        ("treatment", "treatment"),
        ("vaccination,children", "vaccine_info"),
        ("urgent", "emergency"),
        ("diagnosis", "diagnosis"),
        ("hygiene", "general_info"),
        ("", None),
    ])
    def test_intent_from_tags(self, tags, expected):
        assert intent_from_tags(tags) == expected

    def test_find_disease(self):
        assert find_disease("Common cold in winter") == "common_cold"
        assert find_disease("nothing here") is None

    def test_recommendation_falls_back(self):
        assert recommendation("dengue", "High").startswith("High probability of dengue")
        assert recommendation("unknown", "high").startswith("Consult")


def test_store_without_tags_still_trains(model_dir):
    store = KnowledgeStore(
        faqs=[FaqRecord(question="untagged", answer="a")],
        entries=[HealthEntry(title="untagged", content="c")],
    )
    clf = HealthClassifier(store, model_dir)
    clf.train()
    assert clf.classify_intent("vaccination schedule").label == "vaccine_info"


class TestFailedSave:
    BATCH = [{"text": "shots for babies", "label": "vaccine_info", "type": "intent"}]

    def test_unwritable_model_dir_leaves_no_examples(self, sample_store, tmp_path):
        blocker = tmp_path / "models"
        blocker.write_text("not a directory", encoding="utf-8")
        clf = HealthClassifier(sample_store, str(blocker))

        with pytest.raises(OSError):
            clf.retrain(self.BATCH)

        assert clf.trained is False
        assert clf.stats()["retrain_examples"] == 0
        assert clf.build_corpus()[0] == clf.build_corpus({"intent": [], "disease": []})[0]

    def test_second_snapshot_failure_keeps_previous_pair(self, trained, model_dir, monkeypatch):
        def snapshot_bytes():
            out = {}
            for name in (INTENT_MODEL_FILE, DISEASE_MODEL_FILE):
                with open(os.path.join(model_dir, name), "rb") as f:
                    out[name] = f.read()
            return out

        before = snapshot_bytes()
        before_label = trained.classify_intent("shots for babies")
        real_stage = naive_bayes._stage

        def disk_full_on_disease(path, payload):
            if path.endswith(DISEASE_MODEL_FILE):
                raise OSError("No space left on device")
            return real_stage(path, payload)

        monkeypatch.setattr(naive_bayes, "_stage", disk_full_on_disease)
        with pytest.raises(OSError):
            trained.retrain(self.BATCH)

        assert snapshot_bytes() == before
        assert sorted(os.listdir(model_dir)) == sorted([INTENT_MODEL_FILE, DISEASE_MODEL_FILE])
        assert trained.stats()["retrain_examples"] == 0
        assert trained.classify_intent("shots for babies") == before_label

    def test_retrain_after_failure_starts_clean(self, sample_store, tmp_path):
        blocker = tmp_path / "models"
        blocker.write_text("not a directory", encoding="utf-8")
        clf = HealthClassifier(sample_store, str(blocker))
        with pytest.raises(OSError):
            clf.retrain(self.BATCH)

        blocker.unlink()
        clf.train()
        assert clf.stats()["retrain_examples"] == 0
