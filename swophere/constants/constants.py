"""Constants for notification types, agreement statuses and agreement types."""

from enum import Enum


class NotificationType(str, Enum):
    """Enumeration of in-app notification types."""

    MESSAGE = "MESSAGE"
    SKILL_AGREEMENT_CREATED = "SKILL_AGREEMENT_CREATED"
    SKILL_AGREEMENT_SENT = "SKILL_AGREEMENT_SENT"
    AGREEMENT_ACCEPTED = "AGREEMENT_ACCEPTED"
    AGREEMENT_DECLINED = "AGREEMENT_DECLINED"

    # Listing events (emitted by the listing store, not by this service)
    SWAP_INTEREST = "SWAP_INTEREST"
    SWAP_APPROVED = "SWAP_APPROVED"
    SWAP_REJECTED = "SWAP_REJECTED"


class AgreementStatus(str, Enum):
    """Enumeration of agreement statuses."""

    pending = "pending"
    accepted = "accepted"
    declined = "declined"

    # Reserved, nothing transitions into these yet
    active = "active"
    completed = "completed"


class AgreementType(str, Enum):
    """Enumeration of agreement types; unknown values map to `other`."""

    skill_swap = "skill_swap"
    service_exchange = "service_exchange"
    mentorship = "mentorship"
    other = "other"

    @classmethod
    def _missing_(cls, value):
        return cls.other


MESSAGE_PREVIEW_LENGTH = 50
DEFAULT_TIMELINE_DAYS = 30
DEFAULT_SKILL_DURATION_DAYS = 7
DAYS_PER_MONTH = 30
DAYS_PER_WEEK = 7
DEFAULT_DECLINE_REASON = "No reason provided"
