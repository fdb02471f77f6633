"""
Work Description Classifier.

Deterministic keyword scorer that assigns a category, a burn sub-reason and a
confidence to a free-text work description.

Scoring:
  each lexicon phrase found in the lower-cased text adds its word count
  scope-risk hits are weighted x1.5

Decision precedence (not raw magnitude):
  1. scope_risk   if scope score > 0 and >= burn score
  2. billable     if billable score > burn score
  3. margin_burn  if burn score > 0
  4. unclassified otherwise (confidence fixed at 0.3)

Every result carries the raw scores that produced it, and identical input
always yields identical output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from margindefense.lexicon import (
    BILLABLE_KEYWORDS,
    BURN_CATEGORIES,
    BURN_KEYWORDS,
    BURN_REASON_LABELS,
    BURN_REASON_PATTERNS,
    BURN_REASONS,
    CATEGORY_LABELS,
    SCOPE_RISK_KEYWORDS,
    SCOPE_RISK_WEIGHT,
)

MODEL_NAME = "rule-based-keyword-v1"

UNCLASSIFIED_CONFIDENCE = 0.3


@dataclass
class ClassificationResult:
    """Result of classifying a single work description."""
    text: str
    category: str               # billable | margin_burn | scope_risk | unclassified
    burn_reason: Optional[str]  # set only for margin_burn / scope_risk
    confidence: float           # 0.0–1.0
    rationale: str
    scores: Dict[str, float] = field(default_factory=dict)
    model: str = MODEL_NAME

    @property
    def is_burn(self) -> bool:
        return self.category in BURN_CATEGORIES

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "category": self.category,
            "burn_reason": self.burn_reason,
            "confidence": round(self.confidence, 4),
            "rationale": self.rationale,
            "scores": {k: round(v, 4) for k, v in self.scores.items()},
            "model": self.model,
        }


def _keyword_score(text: str, keywords: List[str]) -> int:
    return sum(len(kw.split()) for kw in keywords if kw in text)


def detect_burn_reason(text: str) -> str:
    """Pick the burn reason whose patterns match most often; `other` if none do."""
    lower = text.lower()
    best_reason = "other"
    best_score = 0
    for reason in BURN_REASONS:
        score = sum(1 for pattern in BURN_REASON_PATTERNS[reason] if pattern in lower)
        if score > best_score:
            best_score = score
            best_reason = reason
    return best_reason


def classify_work(description: str) -> ClassificationResult:
    """Classify one work description. Never raises for any string."""
    text = (description or "").lower().strip()

    billable_score = _keyword_score(text, BILLABLE_KEYWORDS)
    burn_score = _keyword_score(text, BURN_KEYWORDS)
    scope_risk_score = _keyword_score(text, SCOPE_RISK_KEYWORDS) * SCOPE_RISK_WEIGHT
    total_score = (billable_score + burn_score + scope_risk_score) or 1

    if scope_risk_score > 0 and scope_risk_score >= burn_score:
        category = "scope_risk"
        confidence = min(0.9, 0.5 + scope_risk_score / 10)
        rationale = "Detected potential scope creep indicators"
    elif billable_score > burn_score and billable_score > 0:
        category = "billable"
        confidence = min(0.95, 0.6 + (billable_score / total_score) * 0.35)
        rationale = "Matches revenue-generating work patterns"
    elif burn_score > 0:
        category = "margin_burn"
        confidence = min(0.9, 0.5 + (burn_score / total_score) * 0.4)
        rationale = "Matches non-billable overhead patterns"
    else:
        category = "unclassified"
        confidence = UNCLASSIFIED_CONFIDENCE
        rationale = "No strong pattern match - manual review recommended"

    burn_reason = detect_burn_reason(text) if category in BURN_CATEGORIES else None

    return ClassificationResult(
        text=description,
        category=category,
        burn_reason=burn_reason,
        confidence=confidence,
        rationale=rationale,
        scores={
            "billable": float(billable_score),
            "margin_burn": float(burn_score),
            "scope_risk": float(scope_risk_score),
        },
    )


def burn_reason_label(reason: Optional[str]) -> str:
    if not reason:
        return "Unknown"
    return BURN_REASON_LABELS.get(reason, reason)


def category_label(category: str) -> str:
    return CATEGORY_LABELS.get(category, category)


class RuleBasedClassifier:
    """
    Batch wrapper around `classify_work`.

    Kept as a class so callers can hold a classifier the same way they would
    hold a model-backed one; there is no state beyond the model name.
    """

    def __init__(self):
        self.model_name = MODEL_NAME

    def predict(self, texts: List[str]) -> List[ClassificationResult]:
        return [classify_work(t) for t in texts]

    def predict_one(self, text: str) -> ClassificationResult:
        return classify_work(text)
