"""Tests for work description classification."""

import pytest
from margindefense.classifier import (
    ClassificationResult,
    RuleBasedClassifier,
    burn_reason_label,
    category_label,
    classify_work,
    detect_burn_reason,
)
from margindefense.lexicon import BURN_REASONS, CATEGORIES


class TestClassificationResult:
    def test_to_dict_has_required_keys(self):
        d = classify_work("Weekly team sync meeting").to_dict()
        for key in ("text", "category", "burn_reason", "confidence", "rationale", "scores", "model"):
            assert key in d

    def test_to_dict_rounds_confidence(self):
        r = ClassificationResult(
            text="x", category="billable", burn_reason=None,
            confidence=0.923456789, rationale="",
        )
        assert r.to_dict()["confidence"] == 0.9235

    def test_is_burn(self):
        assert classify_work("Weekly team sync meeting").is_burn is True
        assert classify_work("Designed and delivered homepage mockups to client").is_burn is False


class TestClassifyWork:
    def test_team_sync_is_internal_meeting_burn(self):
        r = classify_work("Weekly team sync meeting")
        assert r.category == "margin_burn"
        assert r.burn_reason == "internal_meeting"
        assert 0.5 <= r.confidence <= 0.9

    def test_delivered_mockups_is_billable(self):
        r = classify_work("Designed and delivered homepage mockups to client")
        assert r.category == "billable"
        assert r.burn_reason is None
        assert r.confidence == pytest.approx(0.95)

    def test_scope_risk_detected(self):
        r = classify_work("Can you also add an extra page")
        assert r.category == "scope_risk"
        assert r.burn_reason == "scope_creep"
        assert r.scores["scope_risk"] == pytest.approx(6.0)
        assert r.confidence == pytest.approx(0.9)

    def test_scope_risk_wins_tie_with_burn(self):
        # "weekly sync" + "sync" = 3 burn; "quick favor" = 2 × 1.5 = 3 scope
        r = classify_work("weekly sync quick favor")
        assert r.scores["margin_burn"] == r.scores["scope_risk"] == 3.0
        assert r.category == "scope_risk"

    def test_billable_needs_strictly_more_than_burn(self):
        r = classify_work("coding sync")
        assert r.scores["billable"] == r.scores["margin_burn"] == 1.0
        assert r.category == "margin_burn"
        assert r.confidence == pytest.approx(0.7)

    def test_multi_word_phrases_weigh_more(self):
        r = classify_work("Client strategy workshop")
        assert r.scores["billable"] == 2.0

    def test_empty_string_is_unclassified(self):
        r = classify_work("")
        assert r.category == "unclassified"
        assert r.burn_reason is None
        assert r.confidence == 0.3
        assert "No strong pattern match" in r.rationale

    def test_no_match_is_unclassified(self):
        r = classify_work("Lunch")
        assert r.category == "unclassified"
        assert r.confidence == 0.3

    def test_case_insensitive(self):
        assert classify_work("WEEKLY TEAM SYNC MEETING").category == "margin_burn"

    def test_deterministic(self):
        text = "Debugging login authentication issue - client reported bug"
        assert classify_work(text) == classify_work(text)

    @pytest.mark.parametrize("text", [
        "", "   ", "Lunch", "Weekly team sync meeting", "Can you also add an extra page",
        "Designed and delivered homepage mockups to client", "!!!", "coding sync",
    ])
    def test_category_exclusivity(self, text):
        r = classify_work(text)
        assert r.category in CATEGORIES
        assert (r.burn_reason is not None) == (r.category in ("margin_burn", "scope_risk"))
        assert 0.0 <= r.confidence <= 1.0


class TestDetectBurnReason:
    def test_rework(self):
        assert detect_burn_reason("Debugging checkout bug") == "rework"

    def test_default_other(self):
        assert detect_burn_reason("Lunch") == "other"

    def test_tie_goes_to_earlier_reason(self):
        # one internal_meeting hit, one rework hit
        assert detect_burn_reason("meeting about bug") == "internal_meeting"

    def test_all_reasons_known(self):
        assert detect_burn_reason("anything") in BURN_REASONS


class TestLabels:
    def test_burn_reason_label(self):
        assert burn_reason_label("rework") == "Rework / Bug Fix"
        assert burn_reason_label(None) == "Unknown"

    def test_category_label(self):
        assert category_label("margin_burn") == "Margin Burn"


class TestRuleBasedClassifier:
    def setup_method(self):
        self.clf = RuleBasedClassifier()

    def test_batch_processing(self):
        results = self.clf.predict(["Weekly team sync meeting", "Lunch", ""])
        assert len(results) == 3
        assert all(isinstance(r, ClassificationResult) for r in results)

    def test_empty_list(self):
        assert self.clf.predict([]) == []

    def test_model_name_set(self):
        assert self.clf.model_name == "rule-based-keyword-v1"
        assert self.clf.predict_one("Lunch").model == "rule-based-keyword-v1"
