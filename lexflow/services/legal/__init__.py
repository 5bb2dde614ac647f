"""
Legal Query Workflow
====================

Priority-queued legal analysis pipeline:
- Heuristics: keyword-tier jurisdiction and risk scoring
- Analysis Client: Gemini analysis with a CourtListener case-law tool loop
- Synthesizer: citations, recommendations, next steps, billing, notices
- Workflow Engine: queue, concurrency ceiling, state machine, case history

Usage:
    from lexflow.services.legal import build_workflow_service, parse_legal_query

    service = build_workflow_service()
    task_id = service.add_task(parse_legal_query({
        "content": "Client received a TRO hearing notice for Friday",
        "domain": "litigation",
        "jurisdiction": "federal",
        "urgency": "urgent",
    }))
    response = await service.process_next_task()

    print(f"Risk: {response.risk_level}")
    print(f"Next steps: {[s.step for s in response.next_steps]}")
"""

from .analysis_client import (
    AnalysisResult,
    LegalAnalysisClient,
    QueryClassification,
    parse_classification,
)
from .caselaw_service import (
    CASE_LAW_SEARCH_TOOL,
    CaseLawService,
    format_results_for_ai,
    map_jurisdiction,
)
from .citations import CitationExtractor, CitationPattern, extract_citations
from .gemini_client import (
    GeminiClient,
    GenerationResult,
    ModelAPIError,
    ModelConfigurationError,
    ToolCall,
)
from .heuristics import (
    HeuristicContext,
    HeuristicResult,
    JurisdictionalHeuristic,
    LegalHeuristic,
    RiskAssessmentHeuristic,
    get_legal_heuristics,
    risk_level_from_score,
)
from .intake import LegalQueryRequest, parse_legal_query
from .models import (
    CaseHistoryEntry,
    CaseSearchResult,
    ClientInfo,
    FunctionCallRecord,
    JurisdictionAnalysis,
    JurisdictionType,
    LegalCitation,
    LegalDomain,
    LegalNextStep,
    LegalQuery,
    LegalRecommendation,
    LegalResponse,
    LegalUrgency,
    RiskLevel,
    SearchResponse,
    TaskOutcome,
    ToolCallResult,
    WorkflowState,
    WorkflowTask,
)
from .workflow import InvalidStateTransition, LegalWorkflowService, build_workflow_service

__all__ = [
    "AnalysisResult",
    "LegalAnalysisClient",
    "QueryClassification",
    "parse_classification",
    "CASE_LAW_SEARCH_TOOL",
    "CaseLawService",
    "format_results_for_ai",
    "map_jurisdiction",
    "CitationExtractor",
    "CitationPattern",
    "extract_citations",
    "GeminiClient",
    "GenerationResult",
    "ModelAPIError",
    "ModelConfigurationError",
    "ToolCall",
    "HeuristicContext",
    "HeuristicResult",
    "JurisdictionalHeuristic",
    "LegalHeuristic",
    "RiskAssessmentHeuristic",
    "get_legal_heuristics",
    "risk_level_from_score",
    "LegalQueryRequest",
    "parse_legal_query",
    "CaseHistoryEntry",
    "CaseSearchResult",
    "ClientInfo",
    "FunctionCallRecord",
    "JurisdictionAnalysis",
    "JurisdictionType",
    "LegalCitation",
    "LegalDomain",
    "LegalNextStep",
    "LegalQuery",
    "LegalRecommendation",
    "LegalResponse",
    "LegalUrgency",
    "RiskLevel",
    "SearchResponse",
    "TaskOutcome",
    "ToolCallResult",
    "WorkflowState",
    "WorkflowTask",
    "InvalidStateTransition",
    "LegalWorkflowService",
    "build_workflow_service",
]
