"""Tests for text scoring, the in-memory collections and the three answer sources."""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from knowledge_store import FaqRecord, HealthAlert, KnowledgeStore, StoreError, parse_timestamp
from retrieval import (
    ALERT_MARKER,
    AlertCandidate,
    AlertSource,
    FaqSource,
    KnowledgeEntrySource,
    MatchTier,
    SourceTag,
)
from text_processing import full_text_rank, lexemes, normalize_rank, trigram_similarity


def run(coro):
    return asyncio.run(coro)


class TestScoring:
    def test_lexemes_drop_stop_words_and_stem(self):
        assert lexemes("I have fever and headache") == ["fever", "headach"]

    def test_trigram_similarity_bounds(self):
        assert trigram_similarity("dengue", "dengue") == 1.0
        assert trigram_similarity("dengue", "xyz") == 0.0
        assert trigram_similarity("", "dengue") == 0.0

    def test_normalize_rank(self):
        assert normalize_rank(0) == 0.0
        assert normalize_rank(1.0) == 0.5
        assert 0 < normalize_rank(50) < 1

    def test_title_hits_outrank_body_hits(self):
        from collections import Counter

        title = full_text_rank(["fever"], Counter(["fever"]), Counter())
        body = full_text_rank(["fever"], Counter(), Counter(["fever"]))
        assert title > body > 0

    def test_misspelt_term_counts_half(self):
        from collections import Counter

        exact = full_text_rank(["dengue"], Counter(["dengue"]), Counter())
        fuzzy = full_text_rank(["dengu"], Counter(["dengue"]), Counter())
        assert fuzzy == pytest.approx(exact / 2)


class TestStore:
    def test_from_files(self, tmp_path):
        faq = tmp_path / "faq.json"
        faq.write_text(json.dumps([{"question": "q", "answer": "a", "tags": ["x", "y"], "extra": 1}]), encoding="utf-8")
        alerts = tmp_path / "alerts.json"
        alerts.write_text(json.dumps([{"title": "t", "description": "d", "expires_at": "2020-01-01T00:00:00+00:00"}]),
                          encoding="utf-8")

        store = KnowledgeStore.from_files(str(faq), str(tmp_path / "missing.json"), str(alerts))

        assert store.faqs.records() == [FaqRecord(question="q", answer="a", tags="x,y")]
        assert len(store.entries) == 0
        assert store.alerts.records()[0].expires_at.year == 2020

    @pytest.mark.parametrize("raw", ["2030-05-01T12:00:00Z", "2030-05-01T12:00:00z", "2030-05-01T12:00:00+00:00"])
    def test_parse_timestamp_utc_suffix(self, raw):
        assert parse_timestamp(raw) == datetime(2030, 5, 1, 12, tzinfo=timezone.utc)

    def test_alert_expiry_with_z_suffix(self, tmp_path):
        alerts = tmp_path / "alerts.json"
        alerts.write_text(json.dumps([
            {"title": "old", "description": "d", "expires_at": "2000-01-01T00:00:00Z"},
            {"title": "new", "description": "d", "expires_at": "2999-01-01T00:00:00Z"},
        ]), encoding="utf-8")
        store = KnowledgeStore.from_files("", "", str(alerts))
        assert [a.title for a in store.active_alerts()] == ["new"]

    def test_from_files_rejects_non_list(self, tmp_path):
        bad = tmp_path / "faq.json"
        bad.write_text(json.dumps({"question": "q"}), encoding="utf-8")
        with pytest.raises(StoreError):
            KnowledgeStore.from_files(str(bad), "", "")

    def test_active_alerts_sorted_and_filtered(self):
        now = datetime.now(timezone.utc)
        store = KnowledgeStore(alerts=[
            HealthAlert(title="low", description="", priority=1),
            HealthAlert(title="high", description="", priority=5),
            HealthAlert(title="off", description="", priority=9, is_active=False),
            HealthAlert(title="old", description="", priority=9, expires_at=now - timedelta(days=1)),
            HealthAlert(title="soon", description="", priority=3, expires_at=now + timedelta(days=1)),
        ])
        assert [a.title for a in store.active_alerts(now)] == ["high", "soon", "low"]


class TestFaqSource:
    def test_primary_tier(self, sample_store, gateway):
        found = run(FaqSource(sample_store, gateway).search("dengue symptoms", "en"))
        assert found.source is SourceTag.FAQ
        assert found.tier is MatchTier.PRIMARY
        assert found.text == "High fever, severe headache, joint pain and rash."
        assert found.confidence >= 0.3

    def test_trigram_tier(self, sample_store, gateway):
        found = run(FaqSource(sample_store, gateway).search("malar", "en"))
        assert found.tier is MatchTier.TRIGRAM
        assert 0.10 < found.confidence < 0.3
        assert found.text.startswith("Sleep under mosquito nets")

    def test_contains_tier(self, sample_store, gateway):
        found = run(FaqSource(sample_store, gateway).search("ria", "en"))
        assert found.tier is MatchTier.CONTAINS
        assert found.confidence == 0.15

    def test_no_match(self, sample_store, gateway):
        assert run(FaqSource(sample_store, gateway).search("zzzz qqqq", "en")) is None

    def test_blank_query(self, sample_store, gateway, fake_provider):
        assert run(FaqSource(sample_store, gateway).search("   ", "hi")) is None
        assert fake_provider.calls == []

    def test_store_error_is_no_candidate(self, sample_store, gateway, monkeypatch):
        def broken(*args, **kwargs):
            raise StoreError("connection refused")

        monkeypatch.setattr(sample_store.faqs, "match", broken)
        assert run(FaqSource(sample_store, gateway).search("dengue symptoms", "en")) is None

    def test_answer_translated_to_user_language(self, fever_store, gateway):
        found = run(FaqSource(fever_store, gateway).search("मुझे बुखार और सिरदर्द है", "hi"))
        assert found.text == "आराम करें और पानी पिएं"
        assert found.language == "en"


class TestKnowledgeEntrySource:
    def test_carries_category_and_risk(self, sample_store, gateway):
        found = run(KnowledgeEntrySource(sample_store, gateway).search("cholera", "en"))
        assert found.source is SourceTag.KNOWLEDGE_ENTRY
        assert found.category == "Diseases"
        assert found.risk_level == "CRITICAL"
        assert found.text.startswith("Cholera causes")

    def test_fields_translated(self, sample_store, gateway):
        found = run(KnowledgeEntrySource(sample_store, gateway).search("cholera", "ta"))
        assert found.text.startswith("[ta] Cholera causes")
        assert found.category == "[ta] Diseases"


class TestAlertSource:
    def test_live_alert_is_marked(self, sample_store, gateway):
        found = run(AlertSource(sample_store, gateway).search("dengue outbreak", "en"))
        assert isinstance(found, AlertCandidate)
        assert found.text == f"{ALERT_MARKER} Dengue outbreak warning\nDengue cases are rising. Remove standing water."
        assert found.priority == 2

    def test_expired_and_inactive_alerts_ignored(self, gateway):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        store = KnowledgeStore(alerts=[
            HealthAlert(title="Dengue outbreak warning", description="old", expires_at=past),
            HealthAlert(title="Dengue outbreak warning", description="off", is_active=False),
        ])
        assert run(AlertSource(store, gateway).search("dengue outbreak", "en")) is None
