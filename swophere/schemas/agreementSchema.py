from typing import List, Optional
from pydantic import Field, field_validator

from swophere.schemas.messageSchema import CamelModel


class SkillItem(CamelModel):
    """One exchanged skill within an agreement."""
    id: Optional[str] = None
    skill_name: str = ""
    skill_description: str = ""
    deliverables: List[str] = Field(default_factory=list)
    duration: str = ""
    time_commitment: str = ""
    start_date: str = ""
    completion_criteria: str = ""

    @field_validator("deliverables")
    @classmethod
    def validate_deliverables(cls, v: List[str]) -> List[str]:
        if any(not d or not d.strip() for d in v):
            raise ValueError("Deliverables cannot be empty")
        return [d.strip() for d in v]


class AgreementData(CamelModel):
    """Structured terms of a proposed agreement."""
    agreement_title: str = Field(..., min_length=1)
    agreement_type: str = "skill_swap"
    terms: Optional[str] = None
    skills: List[SkillItem] = Field(default_factory=list)
    meeting_location: Optional[str] = None
    communication_method: Optional[str] = None
    dispute_resolution: Optional[str] = None
    confidentiality: bool = False
    termination_clause: Optional[str] = None
    special_conditions: Optional[str] = None

    @field_validator("agreement_title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Agreement title cannot be empty")
        return v.strip()


class AgreementCreateRequest(CamelModel):
    """Request schema for proposing an agreement."""
    from_user: str = Field(..., min_length=1)
    to_user: str = Field(..., min_length=1)
    agreement_data: AgreementData


class AgreementActionRequest(CamelModel):
    """Body for accept/decline; reason is only used on decline."""
    username: Optional[str] = None
    reason: Optional[str] = None
