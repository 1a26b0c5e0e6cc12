"""Skill swap agreement model."""

import uuid
from sqlalchemy import Boolean, Column, Integer, String, Text, JSON

from swophere.constants.constants import AgreementStatus, AgreementType
from swophere.models.base import Base, TimestampMixin


class SwopAgreement(Base, TimestampMixin):
    __tablename__ = "swop_agreements"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    swop_id = Column(String, unique=True, index=True, nullable=False)

    from_user = Column(String, nullable=False, index=True)
    to_user = Column(String, nullable=False, index=True)

    agreement_status = Column(String, nullable=False, default=AgreementStatus.pending.value)
    agreement_title = Column(String, nullable=False)
    agreement_type = Column(String, nullable=False, default=AgreementType.skill_swap.value)
    terms = Column(Text, nullable=True)
    timeline_days = Column(Integer, nullable=False)

    meeting_location = Column(String, nullable=True)
    communication_method = Column(String, nullable=True)
    dispute_resolution = Column(Text, nullable=True)
    confidentiality = Column(Boolean, default=False)
    termination_clause = Column(Text, nullable=True)
    special_conditions = Column(Text, nullable=True)

    skills = Column(JSON, nullable=False, default=list)

    # Kept for data-shape compatibility; no transition reads it
    from_user_accepted = Column(Boolean, default=True, nullable=False)
    to_user_accepted = Column(Boolean, default=False, nullable=False)
