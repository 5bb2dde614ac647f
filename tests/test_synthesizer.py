"""
Tests for the deterministic response synthesizer.
"""

from datetime import date

import pytest

from lexflow.services.legal.models import (
    ClientInfo,
    JurisdictionType,
    LegalDomain,
    LegalRecommendation,
    RiskLevel,
)
from lexflow.services.legal.synthesizer import (
    DEFAULT_ACTION_ITEMS,
    analyze_jurisdiction,
    calculate_billing,
    deadline_priority,
    generate_confidentiality_notice,
    generate_legal_disclaimer,
    generate_next_steps,
    generate_recommendations,
)


def actions(recommendations):
    return [r.action for r in recommendations]


# =============================================================================
# Recommendations
# =============================================================================

class TestRecommendations:

    def test_critical_base_recommendations(self):
        recs = generate_recommendations("", RiskLevel.CRITICAL, JurisdictionType.STATE, LegalDomain.TAX)
        assert actions(recs) == ["Initiate Emergency Protocol", "Client Crisis Communication"]
        assert recs[0].timeline == "Immediate"
        assert recs[1].timeline == "Within 4 hours"

    def test_low_risk_has_no_base_recommendations(self):
        recs = generate_recommendations("", RiskLevel.LOW, JurisdictionType.STATE, LegalDomain.TAX)
        assert recs == []

    def test_moderate(self):
        recs = generate_recommendations("", RiskLevel.MODERATE, JurisdictionType.STATE, LegalDomain.REAL_ESTATE)
        assert actions(recs) == ["Detailed Factual Investigation"]

    def test_corporate_high_adds_board_briefing(self):
        recs = generate_recommendations("", RiskLevel.HIGH, JurisdictionType.STATE, LegalDomain.CORPORATE)
        assert actions(recs) == [
            "Formulate Initial Strategy",
            "Urgent Client Consultation",
            "Board/Executive Briefing",
        ]

    def test_corporate_moderate_has_no_briefing(self):
        recs = generate_recommendations("", RiskLevel.MODERATE, JurisdictionType.STATE, LegalDomain.CORPORATE)
        assert "Board/Executive Briefing" not in actions(recs)

    def test_litigation_always_gets_hold(self):
        recs = generate_recommendations("", RiskLevel.MINIMAL, JurisdictionType.FEDERAL, LegalDomain.LITIGATION)
        assert actions(recs) == ["Implement Litigation Hold"]

        recs = generate_recommendations("", RiskLevel.CRITICAL, JurisdictionType.FEDERAL, LegalDomain.LITIGATION)
        assert actions(recs)[-2:] == ["Implement Litigation Hold", "Assess Injunctive Relief Options"]

    def test_ip_high(self):
        recs = generate_recommendations(
            "", RiskLevel.HIGH, JurisdictionType.FEDERAL, LegalDomain.INTELLECTUAL_PROPERTY
        )
        assert actions(recs)[-1] == "Cease and Desist Evaluation"

    def test_family_critical(self):
        recs = generate_recommendations("", RiskLevel.CRITICAL, JurisdictionType.STATE, LegalDomain.FAMILY)
        emergency = [r for r in recs if r.action == "Emergency Custody/Protection Order"]
        assert len(emergency) == 1
        assert emergency[0].priority == "CRITICAL"
        assert emergency[0].timeline == "Immediate"
        assert actions(recs)[-1] == "Client Support Coordination"

    def test_family_high_and_low(self):
        high = generate_recommendations("", RiskLevel.HIGH, JurisdictionType.STATE, LegalDomain.FAMILY)
        assert "Custody Evaluation" in actions(high)

        low = generate_recommendations("", RiskLevel.LOW, JurisdictionType.STATE, LegalDomain.FAMILY)
        assert actions(low) == ["Client Support Coordination"]


# =============================================================================
# Next Steps
# =============================================================================

class TestNextSteps:

    def test_one_step_per_recommendation(self):
        recs = generate_recommendations("", RiskLevel.CRITICAL, JurisdictionType.STATE, LegalDomain.LITIGATION)
        steps = generate_next_steps(recs, JurisdictionType.STATE)
        assert len(steps) == len(recs)
        assert steps[0].step == "CRITICAL Priority: Initiate Emergency Protocol"
        assert steps[0].assignee == "Lead Counsel"
        assert steps[0].action_items[0] == "Activate crisis response team"

        hold = next(s for s in steps if s.related_recommendation == "Implement Litigation Hold")
        assert hold.action_items == [
            "Draft and issue hold notice",
            "Identify custodians of relevant data",
            "Confirm receipt and compliance",
        ]

    def test_strategy_menu_and_legal_team_assignee(self):
        recs = [
            LegalRecommendation("HIGH", "Formulate Initial Strategy", "Within 24 hours", ""),
            LegalRecommendation("MODERATE", "Client Support Coordination", "Within 5 days", ""),
        ]
        steps = generate_next_steps(recs, JurisdictionType.STATE)
        assert steps[0].action_items[0] == "Conduct initial case assessment"
        assert steps[1].assignee == "Legal Team"
        assert steps[1].action_items == DEFAULT_ACTION_ITEMS

    def test_federal_adds_rules_review(self):
        steps = generate_next_steps([], JurisdictionType.FEDERAL)
        assert len(steps) == 1
        assert steps[0].step == "Review Federal Rules and Local Procedures"
        assert steps[0].deadline == "Ongoing"
        assert steps[0].related_recommendation == "Jurisdictional Compliance"

    @pytest.mark.parametrize("days,priority,review", [
        (2, "CRITICAL", "Schedule internal review 1 days prior"),
        (10, "HIGH", "Schedule internal review 5 days prior"),
        (30, "MODERATE", "Schedule internal review 15 days prior"),
    ])
    def test_deadline_step(self, days, priority, review):
        today = date(2025, 6, 1)
        deadline = date.fromordinal(today.toordinal() + days)
        steps = generate_next_steps([], JurisdictionType.STATE, deadline=deadline, today=today)
        assert len(steps) == 1
        assert steps[0].step == f"{priority} Priority: Meet External Deadline"
        assert steps[0].deadline == deadline.isoformat()
        assert steps[0].assignee == "Case Manager"
        assert steps[0].action_items[-1] == review

    def test_past_deadline_is_critical(self):
        steps = generate_next_steps(
            [], JurisdictionType.STATE, deadline=date(2025, 1, 1), today=date(2025, 6, 1)
        )
        assert steps[0].step.startswith("CRITICAL")
        assert steps[0].action_items[-1] == "Schedule internal review 1 days prior"

    def test_deadline_priority(self):
        assert deadline_priority(0) == "CRITICAL"
        assert deadline_priority(3) == "HIGH"
        assert deadline_priority(14) == "MODERATE"


# =============================================================================
# Billing
# =============================================================================

class TestBilling:

    def test_corporate_half_hour(self):
        billing = calculate_billing(1800, LegalDomain.CORPORATE, 2000)
        assert billing["ai_processing_hours"] == 0.5
        assert billing["hourly_rate"] == 500
        assert billing["ai_time_charge"] == 250.0
        assert billing["estimated_token_cost"] == pytest.approx(0.02)
        assert billing["total_estimated_charge"] == pytest.approx(250.02)
        assert billing["token_count"] == 2000
        assert billing["domain"] == "corporate_law"
        assert billing["time_tracked_seconds"] == 1800

    def test_minimum_billable_time(self):
        billing = calculate_billing(4.2, LegalDomain.FAMILY, 0)
        assert billing["ai_processing_hours"] == 0.1
        assert billing["hourly_rate"] == 350
        assert billing["ai_time_charge"] == pytest.approx(35.0)
        assert billing["time_tracked_seconds"] == 4.2

    def test_rate_table(self):
        assert calculate_billing(3600, LegalDomain.TAX, 0)["hourly_rate"] == 550
        assert calculate_billing(3600, LegalDomain.INTELLECTUAL_PROPERTY, 0)["hourly_rate"] == 525


# =============================================================================
# Jurisdiction + Notices
# =============================================================================

class TestJurisdictionAnalysis:

    def test_federal_profile(self):
        profile = analyze_jurisdiction(JurisdictionType.FEDERAL)
        assert profile.type == "federal"
        assert profile.filing_deadlines["answer"] == "21 days"
        assert "ECF/PACER registration" in profile.key_requirements

    def test_international_profile(self):
        profile = analyze_jurisdiction(JurisdictionType.INTERNATIONAL)
        assert set(profile.filing_deadlines) == {"response", "appeal", "submission"}

    def test_unknown_profile(self):
        profile = analyze_jurisdiction(JurisdictionType.ADMINISTRATIVE)
        assert profile.type == "administrative"
        assert profile.key_requirements == ["N/A - Data not available"]
        assert profile.filing_deadlines == {}
        assert profile.special_considerations == ["Requires specific research"]


class TestNotices:

    def test_confidentiality_notice(self, make_query):
        query = make_query(client_info=ClientInfo(name="Jane Roe", matter_number="M-77"))
        notice = generate_confidentiality_notice(query)
        assert notice.startswith("**CONFIDENTIAL AND PRIVILEGED LEGAL COMMUNICATION**")
        assert "Jane Roe" in notice
        assert "M-77" in notice

    def test_confidentiality_notice_defaults(self, make_query):
        query = make_query(client_info=ClientInfo(name="", matter_number=None))
        notice = generate_confidentiality_notice(query)
        assert "the intended recipient" in notice
        assert "Confidential Matter" in notice

    def test_disclaimer_dates_jurisdiction(self):
        text = generate_legal_disclaimer(JurisdictionType.STATE, today=date(2025, 6, 1))
        assert text.startswith("**LEGAL DISCLAIMER**")
        assert "laws of the state jurisdiction as understood on 2025-06-01" in text
