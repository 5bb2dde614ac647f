"""
Legal Heuristics
================

Cheap, deterministic pre-scoring of a query before it reaches the model.
Each heuristic looks at the query text through tiers of weighted keywords and
returns a score in [0, 1] plus a human-readable reason. The workflow engine
averages every registered heuristic into a single risk level.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Pattern, Tuple

from .models import JurisdictionType, LegalDomain, RiskLevel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeuristicContext:
    """Everything a heuristic is allowed to read."""
    query_content: str
    jurisdiction: JurisdictionType = JurisdictionType.STATE
    domain: LegalDomain = LegalDomain.CORPORATE
    task_id: str = "N/A"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "HeuristicContext":
        """Build a context from a loose mapping, defaulting anything missing or unknown."""
        try:
            jurisdiction = JurisdictionType(data.get("jurisdiction") or JurisdictionType.STATE)
        except ValueError:
            jurisdiction = JurisdictionType.STATE
        try:
            domain = LegalDomain(data.get("domain") or LegalDomain.CORPORATE)
        except ValueError:
            domain = LegalDomain.CORPORATE
        content = data.get("query_content")
        return cls(
            query_content=content if isinstance(content, str) else "",
            jurisdiction=jurisdiction,
            domain=domain,
            task_id=str(data.get("task_id") or "N/A"),
        )


@dataclass(frozen=True)
class HeuristicResult:
    score: float
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "reason": self.reason}


def clamp_score(score: float) -> float:
    return max(0.0, min(score, 1.0))


def risk_level_from_score(score: float) -> RiskLevel:
    """Map a mean heuristic score onto a risk level (monotonic)."""
    if score > 0.75:
        return RiskLevel.CRITICAL
    if score > 0.55:
        return RiskLevel.HIGH
    if score > 0.35:
        return RiskLevel.MODERATE
    if score > 0.15:
        return RiskLevel.LOW
    return RiskLevel.MINIMAL


class LegalHeuristic(ABC):
    """Base class for a pure, read-only query scorer."""

    name: str = "heuristic"

    @abstractmethod
    async def evaluate(self, context: HeuristicContext) -> HeuristicResult:
        """Score the query. Must not raise for malformed input."""


# Tier name -> compiled patterns, evaluated in declaration order
TierTable = Dict[str, List[Pattern[str]]]


def _score_tiers(
    text: str,
    tiers: TierTable,
    weights: Dict[str, float],
) -> Tuple[float, List[Tuple[str, int]]]:
    score = 0.0
    findings = []
    for level, patterns in tiers.items():
        matches = sum(1 for pattern in patterns if pattern.search(text))
        if matches:
            score += matches * weights[level]
            findings.append((level, matches))
    return clamp_score(score), findings


# ============================================================================
# JURISDICTIONAL HEURISTIC
# ============================================================================

def _regex_tiers(tiers: Dict[str, List[str]]) -> TierTable:
    return {level: [re.compile(p, re.IGNORECASE) for p in patterns] for level, patterns in tiers.items()}


JURISDICTION_INDICATORS: Dict[JurisdictionType, TierTable] = {
    JurisdictionType.FEDERAL: _regex_tiers({
        "high": [r"federal", r"constitutional", r"u\.?s\.? code", r"federal register", r"suprem\w+ court"],
        "medium": [r"agency", r"interstate", r"federal court", r"circuit court"],
        "low": [r"regulation", r"statute", r"law", r"cfr"],
    }),
    JurisdictionType.STATE: _regex_tiers({
        "high": [r"state law", r"state code", r"state court", r"supreme court of \w+"],
        "medium": [r"county", r"municipal", r"local", r"state constitution"],
        "low": [r"ordinance", r"regulation", r"statute", r"administrative code"],
    }),
    JurisdictionType.INTERNATIONAL: _regex_tiers({
        "high": [r"treaty", r"international", r"convention", r"hague"],
        "medium": [r"foreign", r"multinational", r"cross-border", r"international court"],
        "low": [r"agreement", r"protocol", r"accord", r"foreign law"],
    }),
}

JURISDICTION_WEIGHTS = {"high": 0.5, "medium": 0.3, "low": 0.2}


class JurisdictionalHeuristic(LegalHeuristic):
    """How strongly does the text talk the language of its declared jurisdiction?"""

    name = "jurisdictional"

    async def evaluate(self, context: HeuristicContext) -> HeuristicResult:
        tiers = JURISDICTION_INDICATORS.get(
            context.jurisdiction, JURISDICTION_INDICATORS[JurisdictionType.STATE]
        )
        score, findings = _score_tiers(context.query_content or "", tiers, JURISDICTION_WEIGHTS)
        summary = ", ".join(f"{level}: {count} matches" for level, count in findings)
        logger.debug(f"[Task {context.task_id}] jurisdictional score {score:.2f} ({summary or 'none'})")
        return HeuristicResult(score=score, reason=f"Jurisdictional indicators: {summary}")


# ============================================================================
# RISK ASSESSMENT HEURISTIC
# ============================================================================

def _keyword_tiers(tiers: Dict[str, List[str]]) -> TierTable:
    return {
        level: [re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE) for word in words]
        for level, words in tiers.items()
    }


RISK_INDICATORS: Dict[LegalDomain, TierTable] = {
    LegalDomain.CORPORATE: _keyword_tiers({
        "critical": ["fraud", "securities violation", "criminal", "bankruptcy", "insolvency", "class action"],
        "high": ["litigation", "breach", "liability", "penalty", "investigation", "regulatory action"],
        "moderate": ["dispute", "compliance", "regulation", "audit", "termination", "claim"],
        "low": ["review", "update", "routine", "standard", "negotiation"],
    }),
    LegalDomain.LITIGATION: _keyword_tiers({
        "critical": ["injunction", "immediate relief", "emergency", "tro", "contempt", "sanctions"],
        "high": ["damages", "deadline", "statute of limitations", "summary judgment", "appeal"],
        "moderate": ["discovery", "motion", "hearing", "deposition", "settlement"],
        "low": ["status", "routine filing", "administrative", "scheduling"],
    }),
    LegalDomain.INTELLECTUAL_PROPERTY: _keyword_tiers({
        "critical": ["infringement", "counterfeiting", "trade secret theft", "copyright violation", "injunction"],
        "high": ["cease and desist", "damages", "royalties", "patent application", "trademark opposition"],
        "moderate": ["license", "portfolio review", "filing", "registration", "opposition"],
        "low": ["routine", "monitoring", "search", "maintenance fees", "renewal"],
    }),
    LegalDomain.EMPLOYMENT: _keyword_tiers({
        "critical": ["discrimination", "harassment", "wrongful termination", "retaliation", "osha violation"],
        "high": ["wage claims", "overtime", "fmla", "ada accommodation", "worker classification"],
        "moderate": ["policy review", "handbook", "employment agreement", "severance", "review"],
        "low": ["routine", "updates", "benefits", "onboarding", "reporting"],
    }),
    LegalDomain.CONTRACTS: _keyword_tiers({
        "critical": ["breach", "termination", "fraud", "force majeure", "rescission"],
        "high": ["damages", "specific performance", "dispute", "indemnification", "warranty"],
        "moderate": ["amendment", "negotiation", "review", "renewal", "assignment"],
        "low": ["routine", "template", "standard", "reference", "draft"],
    }),
    LegalDomain.FAMILY: _keyword_tiers({
        "critical": [
            "emergency custody", "domestic violence", "child abuse", "neglect",
            "termination of parental rights", "immediate danger",
        ],
        "high": [
            "custody dispute", "restraining order", "child support enforcement",
            "visitation rights", "protection order", "contempt",
        ],
        "moderate": ["divorce", "separation", "property division", "spousal support", "modification", "mediation"],
        "low": ["routine filing", "uncontested", "administrative", "documentation", "consultation"],
    }),
}

RISK_WEIGHTS = {"critical": 0.4, "high": 0.3, "moderate": 0.2, "low": 0.1}


class RiskAssessmentHeuristic(LegalHeuristic):
    """Weighted domain-specific risk keywords (word-bounded)."""

    name = "risk_assessment"

    async def evaluate(self, context: HeuristicContext) -> HeuristicResult:
        tiers = RISK_INDICATORS.get(context.domain, RISK_INDICATORS[LegalDomain.CORPORATE])
        score, findings = _score_tiers(context.query_content or "", tiers, RISK_WEIGHTS)
        summary = ", ".join(f"{level}: {count} indicators" for level, count in findings)
        logger.debug(f"[Task {context.task_id}] risk score {score:.2f} ({summary or 'none'})")
        return HeuristicResult(score=score, reason=f"Risk assessment: {summary}")


def get_legal_heuristics() -> List[LegalHeuristic]:
    """Fresh default heuristic set for a workflow engine."""
    return [JurisdictionalHeuristic(), RiskAssessmentHeuristic()]
