"""
Legal Workflow Data Models
==========================

Data structures shared by the workflow engine, the analysis client and the
response synthesizer:
- Closed vocabularies (domain, jurisdiction, urgency, risk, workflow state)
- The immutable LegalQuery handed in by the caller
- The WorkflowTask the engine owns while a query is in flight
- The LegalResponse handed back for the caller to persist
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from lexflow.core.utc import to_iso, utc_now

if TYPE_CHECKING:
    from .heuristics import HeuristicContext


# ============================================================================
# ENUMERATIONS
# ============================================================================

class LegalDomain(str, Enum):
    """Practice area a query belongs to."""
    CORPORATE = "corporate_law"
    LITIGATION = "litigation"
    INTELLECTUAL_PROPERTY = "ip_law"
    EMPLOYMENT = "employment_law"
    REAL_ESTATE = "real_estate_law"
    TAX = "tax_law"
    CONTRACTS = "contract_law"
    REGULATORY = "regulatory_compliance"
    FAMILY = "family_law"


class JurisdictionType(str, Enum):
    """Jurisdiction the query is governed by."""
    FEDERAL = "federal"
    STATE = "state"
    INTERNATIONAL = "international"
    ADMINISTRATIVE = "administrative"
    APPELLATE = "appellate"
    DISTRICT = "district"


class LegalUrgency(str, Enum):
    """Caller-declared urgency, primary queue ordering key."""
    EMERGENCY = "emergency"
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RiskLevel(str, Enum):
    """Aggregated heuristic risk."""
    CRITICAL = "critical"
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"
    MINIMAL = "minimal"


class WorkflowState(str, Enum):
    """Processing stage of a task."""
    RECEIVE_QUERY = "receive_query"
    ANALYZE_JURISDICTION = "analyze_jurisdiction"
    ASSESS_RISK = "assess_risk"
    RESEARCH_LAW = "research_law"
    REVIEW_PRECEDENTS = "review_precedents"
    DRAFT_ADVICE = "draft_advice"
    FINAL_REVIEW = "final_review"
    ERROR = "error"


# Queue ordering: lower sorts first
URGENCY_ORDER: Dict[LegalUrgency, int] = {
    LegalUrgency.EMERGENCY: 0,
    LegalUrgency.URGENT: 1,
    LegalUrgency.HIGH: 2,
    LegalUrgency.MEDIUM: 3,
    LegalUrgency.LOW: 4,
}

# Forward order of the state machine; ERROR sits outside it
STATE_ORDER: Dict[WorkflowState, int] = {
    WorkflowState.RECEIVE_QUERY: 0,
    WorkflowState.ANALYZE_JURISDICTION: 1,
    WorkflowState.ASSESS_RISK: 2,
    WorkflowState.RESEARCH_LAW: 3,
    WorkflowState.REVIEW_PRECEDENTS: 4,
    WorkflowState.DRAFT_ADVICE: 5,
    WorkflowState.FINAL_REVIEW: 6,
}

TERMINAL_STATES = frozenset({WorkflowState.FINAL_REVIEW, WorkflowState.ERROR})


# ============================================================================
# QUERY
# ============================================================================

@dataclass(frozen=True)
class ClientInfo:
    """Who the advice is for."""
    name: str = "Confidential Client"
    matter_number: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "matter_number": self.matter_number, **self.extra}


@dataclass(frozen=True)
class LegalQuery:
    """
    A structured legal question.

    Immutable once enqueued; the engine assigns task_id by copying the
    query with dataclasses.replace().
    """
    content: str
    domain: LegalDomain
    jurisdiction: JurisdictionType
    urgency: LegalUrgency
    priority: int = 3  # 1 = most urgent, 5 = least
    requires_research: bool = True
    client_info: ClientInfo = field(default_factory=ClientInfo)
    related_cases: List[str] = field(default_factory=list)
    deadline: Optional[date] = None
    billable: bool = True
    timestamp: datetime = field(default_factory=utc_now)
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    user_id: Optional[str] = None
    id: Optional[str] = None
    task_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "content": self.content,
            "domain": self.domain.value,
            "jurisdiction": self.jurisdiction.value,
            "urgency": self.urgency.value,
            "priority": self.priority,
            "requires_research": self.requires_research,
            "client_info": self.client_info.to_dict(),
            "related_cases": list(self.related_cases),
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "billable": self.billable,
            "timestamp": to_iso(self.timestamp),
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "user_id": self.user_id,
        }


# ============================================================================
# SYNTHESIZED RECORDS
# ============================================================================

@dataclass(frozen=True)
class LegalCitation:
    """A citation found in model output."""
    type: str  # case_law | statute_usc | statute_state | regulation_cfr | constitution
    citation: str
    components: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "citation": self.citation, "components": list(self.components)}


@dataclass(frozen=True)
class LegalRecommendation:
    priority: str  # CRITICAL | HIGH | MODERATE | LOW
    action: str
    timeline: str
    details: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priority": self.priority,
            "action": self.action,
            "timeline": self.timeline,
            "details": self.details,
        }


@dataclass(frozen=True)
class LegalNextStep:
    step: str
    deadline: str
    assignee: str
    related_recommendation: str
    action_items: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "deadline": self.deadline,
            "assignee": self.assignee,
            "related_recommendation": self.related_recommendation,
            "action_items": list(self.action_items),
        }


@dataclass(frozen=True)
class JurisdictionAnalysis:
    """Static procedural profile for a jurisdiction."""
    type: str
    key_requirements: List[str] = field(default_factory=list)
    filing_deadlines: Dict[str, str] = field(default_factory=dict)
    special_considerations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "key_requirements": list(self.key_requirements),
            "filing_deadlines": dict(self.filing_deadlines),
            "special_considerations": list(self.special_considerations),
        }


# ============================================================================
# CASE LAW / TOOL CALLS
# ============================================================================

@dataclass(frozen=True)
class CaseSearchResult:
    """One normalized court opinion from the case-law search."""
    case_name: str
    citation: str
    court: str
    date: str
    snippet: str
    url: str
    jurisdiction: Optional[str] = None
    docket_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "case_name": self.case_name,
            "citation": self.citation,
            "court": self.court,
            "date_filed": self.date,
            "snippet": self.snippet,
            "url": self.url,
            "jurisdiction": self.jurisdiction,
            "docket_number": self.docket_number,
        }


@dataclass
class SearchResponse:
    results: List[CaseSearchResult]
    count: int
    search_query: str

    @classmethod
    def empty(cls, query: str) -> "SearchResponse":
        return cls(results=[], count=0, search_query=query)


@dataclass
class ToolCallResult:
    success: bool
    data: List[Dict[str, Any]] = field(default_factory=list)
    search_query: Optional[str] = None
    total_results: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        return {
            "success": True,
            "data": self.data,
            "search_query": self.search_query,
            "total_results": self.total_results,
        }


@dataclass
class FunctionCallRecord:
    """Audit record of one tool call requested by the model."""
    name: str
    args: Dict[str, Any]
    result: ToolCallResult

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "args": dict(self.args), "result": self.result.to_dict()}


# ============================================================================
# RESPONSE
# ============================================================================

@dataclass(frozen=True)
class LegalResponse:
    """Finished analysis, handed back for the caller to persist."""
    id: str
    query_id: str
    task_id: str
    content: str
    risk_level: RiskLevel
    jurisdiction_analysis: JurisdictionAnalysis
    citations: List[LegalCitation]
    recommendations: List[LegalRecommendation]
    next_steps: List[LegalNextStep]
    processing_time: float
    token_count: int
    model_used: str
    billing_info: Dict[str, Any]
    confidentiality_notice: str
    legal_disclaimer: str
    created_at: datetime = field(default_factory=utc_now)
    function_calls: List[FunctionCallRecord] = field(default_factory=list)
    case_law_results: List[CaseSearchResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "query_id": self.query_id,
            "task_id": self.task_id,
            "content": self.content,
            "risk_level": self.risk_level.value,
            "jurisdiction_analysis": self.jurisdiction_analysis.to_dict(),
            "citations": [c.to_dict() for c in self.citations],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "next_steps": [s.to_dict() for s in self.next_steps],
            "processing_time": self.processing_time,
            "token_count": self.token_count,
            "model_used": self.model_used,
            "billing_info": dict(self.billing_info),
            "confidentiality_notice": self.confidentiality_notice,
            "legal_disclaimer": self.legal_disclaimer,
            "created_at": to_iso(self.created_at),
            "function_calls": [f.to_dict() for f in self.function_calls],
            "case_law_results": [r.to_dict() for r in self.case_law_results],
        }


# ============================================================================
# WORKFLOW TASK
# ============================================================================

@dataclass
class CaseHistoryEntry:
    timestamp: datetime
    state: WorkflowState
    action: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": to_iso(self.timestamp),
            "state": self.state.value,
            "action": self.action,
            **self.metadata,
        }


@dataclass
class WorkflowTask:
    """A query in flight. Owned exclusively by the workflow engine."""
    id: str
    query: LegalQuery
    priority: int
    timestamp: datetime
    state: WorkflowState = WorkflowState.RECEIVE_QUERY
    context: Optional["HeuristicContext"] = None  # set once analysis starts
    case_history: List[CaseHistoryEntry] = field(default_factory=list)
    billable_time: float = 0.0
    heuristic_scores: Dict[str, float] = field(default_factory=dict)
    risk_score: Optional[float] = None
    risk_level: Optional[RiskLevel] = None
    error: Optional[str] = None

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "query": self.query.to_dict(),
            "priority": self.priority,
            "timestamp": to_iso(self.timestamp),
            "state": self.state.value,
            "case_history": [e.to_dict() for e in self.case_history],
            "billable_time": self.billable_time,
            "heuristic_scores": dict(self.heuristic_scores),
            "risk_score": self.risk_score,
            "risk_level": self.risk_level.value if self.risk_level else None,
            "error": self.error,
        }


@dataclass
class TaskOutcome:
    """Result of one task started by a batch run."""
    task_id: str
    response: Optional[LegalResponse] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.response is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "succeeded": self.succeeded,
            "response": self.response.to_dict() if self.response else None,
            "error": self.error,
        }
