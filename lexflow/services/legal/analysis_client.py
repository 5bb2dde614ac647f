"""
LexFlow - Legal Analysis Client
Turns a LegalQuery into a model analysis, running the case-law tool loop
when research is requested, and classifies raw query text.

The generative model and the case-law service are injected, so any object
with the same coroutine signatures (a scripted fake in tests) can stand in.
"""

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from lexflow.core.config import Settings, get_settings

from .caselaw_service import CASE_LAW_SEARCH_TOOL, CaseLawService, format_results_for_ai
from .gemini_client import (
    GeminiClient,
    ToolCall,
    function_response_turn,
    model_turn,
    user_turn,
)
from .models import (
    CaseSearchResult,
    FunctionCallRecord,
    LegalQuery,
    ToolCallResult,
)

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 5
TOOL_ERROR_MESSAGE = "Error executing function"

LEGAL_ANALYSIS_SYSTEM_PROMPT = """You are an expert legal AI assistant. Analyze the provided query within its context (domain, jurisdiction, urgency).

Format your response using clear markdown with proper headers, lists, and emphasis. Provide a comprehensive response covering:

# Legal Analysis

## 1. Jurisdictional Analysis
Key requirements, deadlines, and considerations for the specified jurisdiction.

## 2. Applicable Law
Identify relevant statutes, regulations, and common law principles with proper citations.

## 3. Precedent Review
Mention significant relevant case law (if applicable and research is enabled).

## 4. Risk Assessment
Evaluate potential legal risks and their severity levels.

## 5. Legal Recommendations
Offer actionable advice based on the analysis with specific steps.

## 6. Next Steps
Outline concrete steps for the legal team or client with timelines.

## 7. Timeline Considerations
Consider urgency and deadlines based on the specified urgency level.

Cite authorities in standard form (e.g. Smith v. Jones, 410 U.S. 113 (1973); 42 U.S.C. § 1983; 29 C.F.R. § 1630.2). Maintain confidentiality."""

CLASSIFICATION_PROMPT = """You are a legal AI assistant. Analyze the following legal query and determine:

1. Legal Domain (choose ONE): contract_law, corporate_law, litigation, ip_law, employment_law, real_estate_law, tax_law, regulatory_compliance, family_law
2. Jurisdiction (choose ONE): federal, state, international, administrative
3. Urgency Level (choose ONE): emergency (immediate action required), urgent (24-48 hours), high (within a week), medium (within a month), low (no immediate timeline)
4. Confidence scores (0.0 to 1.0) for each classification.

Query to analyze: "{content}"

Respond ONLY with a JSON object in this exact format:
{{
  "domain": "contract_law",
  "jurisdiction": "federal",
  "urgency": "medium",
  "confidence": {{"domain": 0.85, "jurisdiction": 0.70, "urgency": 0.90}},
  "reasoning": {{
    "domain": "Brief explanation why this domain was chosen",
    "jurisdiction": "Brief explanation why this jurisdiction was chosen",
    "urgency": "Brief explanation why this urgency level was chosen"
  }}
}}"""

CLASSIFICATION_FIELDS = ("domain", "jurisdiction", "urgency")


# =============================================================================
# Results
# =============================================================================

@dataclass
class AnalysisResult:
    content: str
    model: str
    processing_time: float  # seconds, whole exchange
    token_count: int  # summed over every round trip
    function_calls: List[FunctionCallRecord] = field(default_factory=list)
    case_law_results: List[CaseSearchResult] = field(default_factory=list)


@dataclass
class QueryClassification:
    domain: str
    jurisdiction: str
    urgency: str
    confidence: Dict[str, float]
    reasoning: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "jurisdiction": self.jurisdiction,
            "urgency": self.urgency,
            "confidence": dict(self.confidence),
            "reasoning": dict(self.reasoning),
        }


def _uniform(value: Any) -> Dict[str, Any]:
    return {name: value for name in CLASSIFICATION_FIELDS}


DEFAULT_CLASSIFICATION = QueryClassification(
    domain="contract_law",
    jurisdiction="federal",
    urgency="medium",
    confidence=_uniform(0.5),
    reasoning=_uniform("Default fallback"),
)


def _strip_code_fences(text: str) -> str:
    cleaned = re.sub(r"```json\s*", "", text)
    return re.sub(r"```\s*", "", cleaned).strip()


def parse_classification(text: str) -> QueryClassification:
    """
    Parse the model's classification reply, falling back in three tiers:
    strict JSON, per-field regex, fixed default. Never raises.
    """
    cleaned = _strip_code_fences(text or "")

    try:
        data = json.loads(cleaned)
    except ValueError:
        data = None
    if isinstance(data, dict) and all(data.get(name) for name in CLASSIFICATION_FIELDS):
        confidence = data.get("confidence")
        if not isinstance(confidence, dict):
            confidence = {"domain": 0.8, "jurisdiction": 0.7, "urgency": 0.8}
        reasoning = data.get("reasoning")
        if not isinstance(reasoning, dict):
            reasoning = _uniform("Analysis completed")
        return QueryClassification(
            domain=str(data["domain"]),
            jurisdiction=str(data["jurisdiction"]),
            urgency=str(data["urgency"]),
            confidence=confidence,
            reasoning=reasoning,
        )

    extracted = {}
    for name in CLASSIFICATION_FIELDS:
        match = re.search(rf'"{name}":\s*"([^"]+)"', cleaned)
        if match:
            extracted[name] = match.group(1)
    if len(extracted) == len(CLASSIFICATION_FIELDS):
        logger.warning("Classification reply was not valid JSON; used field extraction")
        return QueryClassification(
            domain=extracted["domain"],
            jurisdiction=extracted["jurisdiction"],
            urgency=extracted["urgency"],
            confidence={"domain": 0.7, "jurisdiction": 0.6, "urgency": 0.7},
            reasoning=_uniform("Extracted from response"),
        )

    logger.warning("Could not parse classification reply; using default classification")
    return QueryClassification(
        domain=DEFAULT_CLASSIFICATION.domain,
        jurisdiction=DEFAULT_CLASSIFICATION.jurisdiction,
        urgency=DEFAULT_CLASSIFICATION.urgency,
        confidence=dict(DEFAULT_CLASSIFICATION.confidence),
        reasoning=dict(DEFAULT_CLASSIFICATION.reasoning),
    )


# =============================================================================
# Client
# =============================================================================

class LegalAnalysisClient:
    """
    Usage:
        client = LegalAnalysisClient(GeminiClient(api_key=...), CaseLawService(api_key=...))
        result = await client.process_legal_query(query)
        print(result.content)
    """

    def __init__(
        self,
        model: Any,
        case_law: Optional[CaseLawService] = None,
        default_temperature: float = 0.3,
        default_max_tokens: int = 8192,
    ):
        self.model = model
        self.case_law = case_law
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LegalAnalysisClient":
        settings = settings or get_settings()
        return cls(
            model=GeminiClient.from_settings(settings),
            case_law=CaseLawService.from_settings(settings),
            default_temperature=settings.default_temperature,
            default_max_tokens=settings.default_max_tokens,
        )

    @property
    def model_name(self) -> str:
        return getattr(self.model, "model", "unknown")

    # -------------------------------------------------------------------------
    # Prompts
    # -------------------------------------------------------------------------

    @staticmethod
    def build_user_prompt(query: LegalQuery) -> str:
        client = query.client_info
        related = ", ".join(query.related_cases) if query.related_cases else "None"
        deadline = query.deadline.isoformat() if query.deadline else "N/A"
        prompt = (
            "**Legal Context:**\n"
            f"- Task ID: {query.task_id or 'N/A'}\n"
            f"- Domain: {query.domain.value}\n"
            f"- Jurisdiction: {query.jurisdiction.value}\n"
            f"- Urgency: {query.urgency.value} ({query.priority}/5 priority)\n"
            f"- Client: {client.name} (Matter: {client.matter_number or 'N/A'})\n"
            f"- Related Cases: {related}\n"
            f"- Deadline: {deadline}\n"
            f"- Research Required: {'Yes' if query.requires_research else 'No'}\n\n"
            f"**Legal Query:**\n{query.content}"
        )
        if query.requires_research:
            prompt += (
                "\n\nUse the search_case_law tool to find supporting precedents "
                "before drafting the Precedent Review section."
            )
        return prompt

    # -------------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------------

    async def process_legal_query(self, query: LegalQuery) -> AnalysisResult:
        """
        Full analysis of one query.

        Raises whatever the model raises; tool failures are recorded instead.
        """
        logger.info(f"Processing legal query (Task ID: {query.task_id or 'N/A'})")
        started = time.perf_counter()

        temperature = query.temperature if query.temperature is not None else self.default_temperature
        max_tokens = query.max_tokens or self.default_max_tokens
        tools = [CASE_LAW_SEARCH_TOOL] if query.requires_research and self.case_law else None
        contents = [user_turn(self.build_user_prompt(query))]

        first = await self.model.generate(
            contents,
            system_instruction=LEGAL_ANALYSIS_SYSTEM_PROMPT,
            temperature=temperature,
            max_tokens=max_tokens,
            tools=tools,
        )
        token_count = first.total_tokens
        content = first.text
        function_calls: List[FunctionCallRecord] = []
        case_law_results: List[CaseSearchResult] = []

        if first.tool_calls:
            logger.info(f"[Task {query.task_id}] model requested {len(first.tool_calls)} tool call(s)")
            outcomes = await asyncio.gather(*(self._execute_tool_call(call) for call in first.tool_calls))

            responses = []
            for record, model_text, cases in outcomes:
                function_calls.append(record)
                case_law_results.extend(cases)
                responses.append({"name": record.name, "response": {"result": model_text}})

            contents = contents + [model_turn(first.model_parts), function_response_turn(responses)]
            second = await self.model.generate(
                contents,
                system_instruction=LEGAL_ANALYSIS_SYSTEM_PROMPT,
                temperature=temperature,
                max_tokens=max_tokens,
                tools=tools,
            )
            token_count += second.total_tokens
            content = second.text

        processing_time = time.perf_counter() - started
        logger.info(
            f"[Task {query.task_id}] analysis complete in {processing_time:.2f}s "
            f"({token_count} tokens, {len(case_law_results)} cases)"
        )
        return AnalysisResult(
            content=content,
            model=self.model_name,
            processing_time=processing_time,
            token_count=token_count,
            function_calls=function_calls,
            case_law_results=case_law_results,
        )

    async def _execute_tool_call(self, call: ToolCall):
        """Run one tool call. Returns (record, text for the model, normalized cases)."""
        args = {key: value for key, value in call.args.items() if value is not None}
        try:
            if call.name != "search_case_law" or self.case_law is None:
                raise ValueError(f"Unknown function: {call.name}")
            if not args.get("query"):
                raise ValueError("search_case_law requires a query")

            limit = args.get("limit", DEFAULT_SEARCH_LIMIT)
            response = await self.case_law.search_case_law(
                query=str(args["query"]),
                jurisdiction=args.get("jurisdiction"),
                start_date=args.get("start_date"),
                end_date=args.get("end_date"),
                limit=int(limit),
            )
        except Exception as e:
            logger.error(f"Tool call {call.name} failed: {e}")
            record = FunctionCallRecord(
                name=call.name, args=args, result=ToolCallResult(success=False, error=str(e))
            )
            return record, TOOL_ERROR_MESSAGE, []

        record = FunctionCallRecord(
            name=call.name,
            args=args,
            result=ToolCallResult(
                success=True,
                data=[case.to_dict() for case in response.results],
                search_query=response.search_query,
                total_results=response.count,
            ),
        )
        return record, format_results_for_ai(response), list(response.results)

    # -------------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------------

    async def analyze_legal_query(self, content: str) -> QueryClassification:
        """
        Suggest domain, jurisdiction and urgency for raw query text.

        Malformed model output falls back to defaults; a failed call raises.
        """
        result = await self.model.generate(
            [user_turn(CLASSIFICATION_PROMPT.format(content=content))],
            temperature=0.1,
            max_tokens=1000,
        )
        if not result.text:
            logger.warning("Empty classification reply; using default classification")
        return parse_classification(result.text)
