"""
LexFlow - Shared Test Fixtures
Provides query builders, a scripted model and a fake case-law service.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from lexflow.core.config import get_settings
from lexflow.services.legal.gemini_client import GenerationResult, ToolCall
from lexflow.services.legal.models import (
    CaseSearchResult,
    ClientInfo,
    JurisdictionType,
    LegalDomain,
    LegalQuery,
    LegalUrgency,
    SearchResponse,
)


# =============================================================================
# Core Fixtures
# =============================================================================

@pytest.fixture
def anyio_backend():
    """Use asyncio for async tests."""
    return "asyncio"


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Keep real API keys out of tests and reset the settings cache."""
    for name in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "COURTLISTENER_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Queries
# =============================================================================

BASE_TIME = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_query():
    """Factory for LegalQuery with sensible defaults."""

    def _make(
        content: str = "Please review our standard vendor agreement.",
        domain: LegalDomain = LegalDomain.CORPORATE,
        jurisdiction: JurisdictionType = JurisdictionType.STATE,
        urgency: LegalUrgency = LegalUrgency.MEDIUM,
        offset_seconds: int = 0,
        **kwargs: Any,
    ) -> LegalQuery:
        kwargs.setdefault("client_info", ClientInfo(name="Acme Corp", matter_number="M-1001"))
        kwargs.setdefault("requires_research", False)
        return LegalQuery(
            content=content,
            domain=domain,
            jurisdiction=jurisdiction,
            urgency=urgency,
            timestamp=BASE_TIME + timedelta(seconds=offset_seconds),
            **kwargs,
        )

    return _make


# =============================================================================
# Model / Case Law Fakes
# =============================================================================

class ScriptedModel:
    """Replays canned GenerationResults (or raises canned exceptions) in order."""

    model = "gemini-test"

    def __init__(self, replies: List[Any]):
        self.replies = list(replies)
        self.calls: List[Dict[str, Any]] = []

    async def generate(
        self,
        contents,
        system_instruction: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 8192,
        tools=None,
    ) -> GenerationResult:
        self.calls.append({
            "contents": contents,
            "system_instruction": system_instruction,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "tools": tools,
        })
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return reply


class FakeCaseLaw:
    """Records searches and returns a fixed response (or raises)."""

    def __init__(self, response: Optional[SearchResponse] = None, error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.searches: List[Dict[str, Any]] = []

    async def search_case_law(self, query, jurisdiction=None, start_date=None, end_date=None, limit=5):
        self.searches.append({
            "query": query,
            "jurisdiction": jurisdiction,
            "start_date": start_date,
            "end_date": end_date,
            "limit": limit,
        })
        if self.error:
            raise self.error
        return self.response or SearchResponse.empty(query)


@pytest.fixture
def scripted_model():
    return ScriptedModel


@pytest.fixture
def fake_case_law():
    return FakeCaseLaw


@pytest.fixture
def text_reply():
    def _reply(text: str, tokens: int = 100) -> GenerationResult:
        return GenerationResult(text=text, total_tokens=tokens, model_parts=[{"text": text}])

    return _reply


@pytest.fixture
def tool_reply():
    def _reply(*calls: ToolCall, tokens: int = 50) -> GenerationResult:
        parts = [{"functionCall": {"name": c.name, "args": c.args}} for c in calls]
        return GenerationResult(text="", total_tokens=tokens, tool_calls=list(calls), model_parts=parts)

    return _reply


@pytest.fixture
def sample_case():
    return CaseSearchResult(
        case_name="Doe v. Roe",
        citation="123 F.3d 456",
        court="ca9",
        date="1999-04-01",
        snippet="The court held that the covenant was unenforceable.",
        url="https://www.courtlistener.com/opinion/1/doe-v-roe/",
        jurisdiction="F",
        docket_number="98-1234",
    )
