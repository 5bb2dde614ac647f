"""
Legal Query Intake
Validates untrusted query input before anything is enqueued.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lexflow.core.utc import epoch_millis, utc_now

from .models import (
    ClientInfo,
    JurisdictionType,
    LegalDomain,
    LegalQuery,
    LegalUrgency,
)


class ClientInfoRequest(BaseModel):
    """Who the advice is for; unknown keys are kept."""
    model_config = ConfigDict(extra="allow")

    name: str = "Confidential Client"
    matter_number: Optional[str] = None


class LegalQueryRequest(BaseModel):
    """Request body for submitting a legal query."""
    content: str = Field(..., min_length=1)
    domain: LegalDomain
    jurisdiction: JurisdictionType
    urgency: LegalUrgency
    priority: int = Field(default=3, ge=1, le=5)
    requires_research: bool = True
    client_info: Optional[ClientInfoRequest] = None
    related_cases: List[str] = Field(default_factory=list)
    deadline: Optional[date] = None
    billable: bool = True
    max_tokens: int = Field(default=2048, gt=0)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    user_id: Optional[str] = None
    id: Optional[str] = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Query content is required")
        return v.strip()

    def to_query(self) -> LegalQuery:
        if self.client_info is None:
            client = ClientInfo(name="Confidential Client", matter_number=f"M-{epoch_millis()}")
        else:
            extra: Dict[str, Any] = dict(self.client_info.model_extra or {})
            client = ClientInfo(
                name=self.client_info.name,
                matter_number=self.client_info.matter_number,
                extra=extra,
            )
        return LegalQuery(
            content=self.content,
            domain=self.domain,
            jurisdiction=self.jurisdiction,
            urgency=self.urgency,
            priority=self.priority,
            requires_research=self.requires_research,
            client_info=client,
            related_cases=list(self.related_cases),
            deadline=self.deadline,
            billable=self.billable,
            timestamp=utc_now(),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            user_id=self.user_id,
            id=self.id,
        )


def parse_legal_query(data: Dict[str, Any]) -> LegalQuery:
    """
    Validate a raw mapping and build a LegalQuery.

    Raises:
        pydantic.ValidationError: missing content, unknown enum values,
            out-of-range priority or an unparseable deadline
    """
    return LegalQueryRequest.model_validate(data).to_query()
