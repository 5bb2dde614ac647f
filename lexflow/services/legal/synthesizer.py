"""
Legal Response Synthesizer
==========================

Deterministic post-processing of the model's analysis: recommendations,
next steps, billing, the jurisdiction profile and the standard notices.
Nothing here talks to the network or mutates its inputs.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from lexflow.core.utc import utc_today

from .models import (
    JurisdictionAnalysis,
    JurisdictionType,
    LegalDomain,
    LegalNextStep,
    LegalQuery,
    LegalRecommendation,
    RiskLevel,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Recommendations
# =============================================================================

def _rec(priority: str, action: str, timeline: str, details: str) -> LegalRecommendation:
    return LegalRecommendation(priority=priority, action=action, timeline=timeline, details=details)


RISK_RECOMMENDATIONS: Dict[RiskLevel, List[LegalRecommendation]] = {
    RiskLevel.CRITICAL: [
        _rec("CRITICAL", "Initiate Emergency Protocol", "Immediate",
             "Requires immediate senior counsel review and potential external notifications."),
        _rec("CRITICAL", "Client Crisis Communication", "Within 4 hours",
             "Establish secure communication channel with client for urgent updates."),
    ],
    RiskLevel.HIGH: [
        _rec("HIGH", "Formulate Initial Strategy", "Within 24 hours",
             "Develop preliminary response strategy and assign lead counsel."),
        _rec("HIGH", "Urgent Client Consultation", "Within 48 hours",
             "Schedule detailed discussion of risks, strategy, and required actions."),
    ],
    RiskLevel.MODERATE: [
        _rec("MODERATE", "Detailed Factual Investigation", "Within 3-5 days",
             "Gather all relevant documents and witness information."),
    ],
}

_ELEVATED = (RiskLevel.CRITICAL, RiskLevel.HIGH)


def generate_recommendations(
    content: str,
    risk_level: RiskLevel,
    jurisdiction: JurisdictionType,
    domain: LegalDomain,
) -> List[LegalRecommendation]:
    """
    Rule-based recommendations from the risk level and practice area.

    `content` and `jurisdiction` are accepted so content-aware rules can be
    added without changing callers; the current rules do not read them.
    """
    recommendations = list(RISK_RECOMMENDATIONS.get(risk_level, []))
    elevated = risk_level in _ELEVATED

    if domain == LegalDomain.CORPORATE and elevated:
        recommendations.append(_rec(
            "HIGH", "Board/Executive Briefing", "Within 72 hours",
            "Prepare briefing for senior management/board on risks and proposed actions.",
        ))
    elif domain == LegalDomain.LITIGATION:
        recommendations.append(_rec(
            "HIGH", "Implement Litigation Hold", "Immediate",
            "Issue formal litigation hold notice to relevant parties.",
        ))
        if elevated:
            recommendations.append(_rec(
                "HIGH", "Assess Injunctive Relief Options", "Within 48 hours",
                "Evaluate grounds for seeking or defending against preliminary injunctions/TROs.",
            ))
    elif domain == LegalDomain.INTELLECTUAL_PROPERTY and elevated:
        recommendations.append(_rec(
            "HIGH", "Cease and Desist Evaluation", "Within 72 hours",
            "Determine appropriateness and strategy for sending/responding to C&D letters.",
        ))
    elif domain == LegalDomain.FAMILY:
        if risk_level == RiskLevel.CRITICAL:
            recommendations.append(_rec(
                "CRITICAL", "Emergency Custody/Protection Order", "Immediate",
                "File emergency motion for custody or protection order to ensure safety.",
            ))
        elif risk_level == RiskLevel.HIGH:
            recommendations.append(_rec(
                "HIGH", "Custody Evaluation", "Within 48 hours",
                "Assess custody arrangements and prepare necessary documentation.",
            ))
        recommendations.append(_rec(
            "MODERATE", "Client Support Coordination", "Within 5 days",
            "Coordinate with family services, counselors, or mediators as appropriate.",
        ))

    return recommendations


# =============================================================================
# Next Steps
# =============================================================================

# Checked in order; first substring found in the action wins
ACTION_ITEM_MENUS = [
    ("Emergency Protocol", [
        "Activate crisis response team",
        "Notify insurance carrier (if applicable)",
        "Secure relevant systems/data",
    ]),
    ("Strategy", [
        "Conduct initial case assessment",
        "Identify key legal issues",
        "Outline potential defenses/claims",
    ]),
    ("Litigation Hold", [
        "Draft and issue hold notice",
        "Identify custodians of relevant data",
        "Confirm receipt and compliance",
    ]),
]

DEFAULT_ACTION_ITEMS = [
    "Review all relevant documentation",
    "Consult with appropriate team members",
    "Schedule follow-up meeting to review progress",
]


def action_items_for(action: str) -> List[str]:
    for needle, items in ACTION_ITEM_MENUS:
        if needle in action:
            return list(items)
    return list(DEFAULT_ACTION_ITEMS)


def deadline_priority(days_remaining: int) -> str:
    if days_remaining < 3:
        return "CRITICAL"
    if days_remaining < 14:
        return "HIGH"
    return "MODERATE"


def generate_next_steps(
    recommendations: List[LegalRecommendation],
    jurisdiction: JurisdictionType,
    deadline: Optional[date] = None,
    today: Optional[date] = None,
) -> List[LegalNextStep]:
    """One step per recommendation, plus jurisdiction and deadline steps."""
    steps = [
        LegalNextStep(
            step=f"{rec.priority} Priority: {rec.action}",
            deadline=rec.timeline,
            assignee="Lead Counsel" if rec.priority in ("CRITICAL", "HIGH") else "Legal Team",
            related_recommendation=rec.action,
            action_items=action_items_for(rec.action),
        )
        for rec in recommendations
    ]

    if jurisdiction == JurisdictionType.FEDERAL:
        steps.append(LegalNextStep(
            step="Review Federal Rules and Local Procedures",
            deadline="Ongoing",
            assignee="Legal Team",
            related_recommendation="Jurisdictional Compliance",
            action_items=[
                "Confirm FRCP applicability",
                "Check specific district/judge local rules",
                "Verify ECF filing requirements",
            ],
        ))

    if deadline is not None:
        days_remaining = max(0, (deadline - (today or utc_today())).days)
        priority = deadline_priority(days_remaining)
        steps.append(LegalNextStep(
            step=f"{priority} Priority: Meet External Deadline",
            deadline=deadline.isoformat(),
            assignee="Case Manager",
            related_recommendation="Deadline Management",
            action_items=[
                "Confirm deadline accuracy",
                "Allocate resources for completion",
                f"Schedule internal review {max(1, days_remaining // 2)} days prior",
            ],
        ))

    return steps


# =============================================================================
# Billing
# =============================================================================

HOURLY_RATES: Dict[LegalDomain, int] = {
    LegalDomain.CORPORATE: 500,
    LegalDomain.LITIGATION: 450,
    LegalDomain.INTELLECTUAL_PROPERTY: 525,
    LegalDomain.EMPLOYMENT: 400,
    LegalDomain.REAL_ESTATE: 375,
    LegalDomain.TAX: 550,
    LegalDomain.CONTRACTS: 425,
    LegalDomain.REGULATORY: 475,
    LegalDomain.FAMILY: 350,
}
DEFAULT_HOURLY_RATE = 400
MINIMUM_BILLABLE_HOURS = 0.1
TOKEN_RATE_PER_1K = 0.01  # USD


def calculate_billing(processing_time: float, domain: LegalDomain, token_count: int) -> Dict[str, Any]:
    """
    Estimate charges for one analysis.

    Args:
        processing_time: Wall-clock seconds spent on the model exchange
        domain: Practice area (selects the hourly rate)
        token_count: Tokens consumed across all model round trips
    """
    hours = max(processing_time / 3600, MINIMUM_BILLABLE_HOURS)
    rate = HOURLY_RATES.get(domain, DEFAULT_HOURLY_RATE)
    time_charge = hours * rate
    token_cost = (token_count / 1000) * TOKEN_RATE_PER_1K

    return {
        "billable": True,
        "ai_processing_hours": round(hours, 2),
        "hourly_rate": rate,
        "ai_time_charge": round(time_charge, 2),
        "token_count": token_count,
        "estimated_token_cost": round(token_cost, 4),
        "total_estimated_charge": round(time_charge + token_cost, 2),
        "domain": domain.value,
        "time_tracked_seconds": round(processing_time, 2),
    }


NON_BILLABLE = {"billable": False}


# =============================================================================
# Jurisdiction Profile
# =============================================================================

JURISDICTION_PROFILES: Dict[JurisdictionType, JurisdictionAnalysis] = {
    JurisdictionType.FEDERAL: JurisdictionAnalysis(
        type=JurisdictionType.FEDERAL.value,
        key_requirements=[
            "Federal court admission",
            "ECF/PACER registration",
            "Adherence to FRCP & Local Rules",
        ],
        filing_deadlines={
            "answer": "21 days",
            "appeal": "30 days (most cases)",
            "motion_response": "14 days",
        },
        special_considerations=[
            "Potential MDL proceedings",
            "Specific judge's rules",
            "Circuit court precedent",
        ],
    ),
    JurisdictionType.STATE: JurisdictionAnalysis(
        type=JurisdictionType.STATE.value,
        key_requirements=[
            "State bar membership",
            "Pro Hac Vice (if applicable)",
            "State-specific procedural rules",
        ],
        filing_deadlines={
            "answer": "Varies by state (e.g., 20-30 days)",
            "appeal": "Varies (e.g., 30-60 days)",
            "motion_response": "Varies",
        },
        special_considerations=[
            "Local counsel rules",
            "Varying discovery limits",
            "State constitutional issues",
        ],
    ),
    JurisdictionType.INTERNATIONAL: JurisdictionAnalysis(
        type=JurisdictionType.INTERNATIONAL.value,
        key_requirements=[
            "Foreign jurisdiction licensing",
            "Treaty compliance",
            "Local counsel requirement",
        ],
        filing_deadlines={
            "response": "Varies widely by country",
            "appeal": "Varies widely by country",
            "submission": "Varies widely by country",
        },
        special_considerations=[
            "Language requirements",
            "Jurisdictional conflicts",
            "Enforcement challenges",
        ],
    ),
}


def analyze_jurisdiction(jurisdiction: JurisdictionType) -> JurisdictionAnalysis:
    profile = JURISDICTION_PROFILES.get(jurisdiction)
    if profile is None:
        return JurisdictionAnalysis(
            type=jurisdiction.value,
            key_requirements=["N/A - Data not available"],
            filing_deadlines={},
            special_considerations=["Requires specific research"],
        )
    return profile


# =============================================================================
# Notices
# =============================================================================

def generate_confidentiality_notice(query: LegalQuery) -> str:
    client_name = query.client_info.name or "the intended recipient"
    matter = query.client_info.matter_number or "Confidential Matter"
    return (
        "**CONFIDENTIAL AND PRIVILEGED LEGAL COMMUNICATION**\n\n"
        "**Attorney Work Product**\n\n"
        "This communication is protected by attorney-client privilege and the work product "
        f"doctrine. It is intended solely for the use of {client_name} regarding matter "
        f"{matter}. If you are not the intended recipient, please notify the sender "
        "immediately and delete this communication. Any unauthorized review, use, "
        "disclosure, or distribution is prohibited."
    )


def generate_legal_disclaimer(jurisdiction: JurisdictionType, today: Optional[date] = None) -> str:
    as_of = (today or utc_today()).isoformat()
    return (
        "**LEGAL DISCLAIMER**\n\n"
        f"This analysis pertains specifically to the laws of the {jurisdiction.value} "
        f"jurisdiction as understood on {as_of}. It was prepared with AI assistance and is "
        "provided for informational purposes for review by qualified counsel. It does not "
        "constitute legal advice on its own and does not create an attorney-client "
        "relationship. Laws and regulations change frequently; verify all authorities "
        "before relying on this analysis."
    )
