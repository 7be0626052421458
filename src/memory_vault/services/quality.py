"""Deterministic quality scoring for candidate memories."""

import re

from memory_vault.domain.models import QualityAssessment, Recommendation
from memory_vault.services.validation import QUESTION_PREFIX

PERSONAL_CUES = re.compile(r"my name is|\bi am\b|\bi'm\b|i work as|my job is|i live in|i'm from", re.IGNORECASE)
PREFERENCE_CUES = re.compile(
    r"\bi like\b|\bi prefer\b|\bi love\b|\bi hate\b|\bi enjoy\b|my favorite|i'm interested in", re.IGNORECASE
)
PROJECT_CUES = re.compile(
    r"project|goal|objective|deadline|timeline|milestone|i'm working on|i'm building", re.IGNORECASE
)
TECHNICAL_CUES = re.compile(
    r"\b(code|coding|programming|software|developer|engineer|engineering|data|database|api|framework"
    r"|python|javascript|typescript|rust|golang|java|sql|machine learning|algorithm|cloud|devops)\b",
    re.IGNORECASE,
)

SAVE_AT = 0.7
SKIP_AT = 0.3


class QualityScorer:
    """Scores how much durable, user-specific information a text carries.

    The score starts at zero and moves by fixed weights per matched cue family,
    then is clamped to [0, 1].
    """

    def assess(self, content: str, context: str = "") -> QualityAssessment:
        score = 0.0
        reasons: list[str] = []
        words = len(content.split())

        if PERSONAL_CUES.search(content):
            score += 0.4
            reasons.append("personal information")
        if PREFERENCE_CUES.search(content):
            score += 0.3
            reasons.append("preference")
        if PROJECT_CUES.search(content) or TECHNICAL_CUES.search(content):
            score += 0.3
            reasons.append("project or technical detail")
        if QUESTION_PREFIX.match(content.strip()):
            score -= 0.5
            reasons.append("phrased as a question")
        if words > 100:
            score += 0.1
            reasons.append("detailed")
        if words < 3:
            score -= 0.3
            reasons.append("too few words")
        if context and context.lower() in content.lower():
            score += 0.2
            reasons.append("matches conversation context")

        score = max(0.0, min(1.0, score))
        if score >= SAVE_AT:
            recommendation = Recommendation.SAVE
        elif score <= SKIP_AT:
            recommendation = Recommendation.SKIP
        else:
            recommendation = Recommendation.REVIEW
        return QualityAssessment(score=score, reasons=reasons, recommendation=recommendation)

    def score(self, content: str, context: str = "") -> float:
        return self.assess(content, context).score
