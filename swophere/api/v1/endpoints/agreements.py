"""Skill swap agreements: proposal, lookup and the recipient's accept/decline decision."""

import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Query, status
from sqlalchemy import select, and_, or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from swophere.constants.constants import (
    DEFAULT_DECLINE_REASON,
    AgreementStatus,
    AgreementType,
    NotificationType,
)
from swophere.core.database import aget_db
from swophere.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from swophere.models.agreement import SwopAgreement
from swophere.schemas.agreementSchema import AgreementActionRequest, AgreementCreateRequest
from swophere.services.AgreementEmailNotifications import (
    notify_agreement_proposed,
    notify_agreement_response,
)
from swophere.services.NotificationService import emit_notification
from swophere.utils.agreement_utils import calculate_timeline_days, generate_swop_id
from swophere.utils.datetime_utils import to_utc_iso
from swophere.utils.user_lookup import get_user_by_username

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agreements", tags=["agreements"])


def _format_agreement(agreement: SwopAgreement) -> dict:
    return {
        "id": agreement.id,
        "swop_id": agreement.swop_id,
        "from_user": agreement.from_user,
        "to_user": agreement.to_user,
        "agreement_status": agreement.agreement_status,
        "agreement_title": agreement.agreement_title,
        "agreement_type": agreement.agreement_type,
        "terms": agreement.terms,
        "timeline_days": agreement.timeline_days,
        "meeting_location": agreement.meeting_location,
        "communication_method": agreement.communication_method,
        "dispute_resolution": agreement.dispute_resolution,
        "confidentiality": agreement.confidentiality,
        "termination_clause": agreement.termination_clause,
        "special_conditions": agreement.special_conditions,
        "skills": agreement.skills or [],
        "from_user_accepted": agreement.from_user_accepted,
        "to_user_accepted": agreement.to_user_accepted,
        "created_at": to_utc_iso(agreement.created_at),
        "updated_at": to_utc_iso(agreement.updated_at),
    }


async def _get_agreement_or_404(db: AsyncSession, swop_id: str) -> SwopAgreement:
    result = await db.execute(
        select(SwopAgreement).where(SwopAgreement.swop_id == swop_id)
    )
    agreement = result.scalar_one_or_none()
    if not agreement:
        raise NotFoundError("Agreement not found")
    return agreement


def _require_username(payload: Optional[AgreementActionRequest]) -> str:
    username = payload.username if payload else None
    if not username:
        raise ValidationError("Username is required")
    return username


async def _notify_creator(
    db: AsyncSession,
    background_tasks: BackgroundTasks,
    snapshot: dict,
    responder: str,
    accepted: bool,
    reason: Optional[str] = None,
):
    """In-app notification and email to the creator about the recipient's decision."""
    title = snapshot["agreement_title"]
    if accepted:
        notification_type = NotificationType.AGREEMENT_ACCEPTED
        heading = "Agreement Accepted!"
        metadata = {"agreementTitle": title}
    else:
        notification_type = NotificationType.AGREEMENT_DECLINED
        heading = "Agreement Declined"
        metadata = {"agreementTitle": title, "reason": reason}
    verb = "accepted" if accepted else "declined"

    await emit_notification(
        db,
        user_id=snapshot["from_user"],
        type=notification_type,
        title=heading,
        message=f'{responder} has {verb} your skill swap agreement: "{title}"',
        related_id=snapshot["swop_id"],
        related_username=responder,
        metadata=metadata,
    )

    creator = await get_user_by_username(db, snapshot["from_user"])
    if creator:
        background_tasks.add_task(
            notify_agreement_response,
            creator_email=creator.email,
            creator_name=creator.display_name,
            responder=responder,
            agreement_title=title,
            swop_id=snapshot["swop_id"],
            accepted=accepted,
            reason=reason,
        )


@router.get("")
async def list_agreements(
    username: Optional[str] = Query(None),
    db: AsyncSession = Depends(aget_db)
):
    """List agreements the user created or received, newest first."""
    if not username:
        raise ValidationError("Username is required")

    try:
        result = await db.execute(
            select(SwopAgreement)
            .where(or_(SwopAgreement.from_user == username, SwopAgreement.to_user == username))
            .order_by(SwopAgreement.created_at.desc())
        )
        agreements = result.scalars().all()

        return {
            "success": True,
            "agreements": [_format_agreement(a) for a in agreements]
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get agreements error for {username}: {str(e)}", exc_info=True)
        raise InternalError()


@router.get("/check")
async def check_agreement_between_users(
    user1: Optional[str] = Query(None),
    user2: Optional[str] = Query(None),
    db: AsyncSession = Depends(aget_db)
):
    """Return the latest agreement between two users in either direction, if any."""
    if not user1 or not user2:
        raise ValidationError("user1 and user2 are required")

    try:
        result = await db.execute(
            select(SwopAgreement)
            .where(
                or_(
                    and_(SwopAgreement.from_user == user1, SwopAgreement.to_user == user2),
                    and_(SwopAgreement.from_user == user2, SwopAgreement.to_user == user1),
                )
            )
            .order_by(SwopAgreement.created_at.desc())
            .limit(1)
        )
        agreement = result.scalar_one_or_none()

        if not agreement:
            return {"success": True, "agreement": None}

        return {
            "success": True,
            "agreement": {
                "id": agreement.swop_id,
                "status": agreement.agreement_status,
                "createdBy": agreement.from_user,
                "otherParty": agreement.to_user,
            }
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Check agreement error: {str(e)}", exc_info=True)
        raise InternalError()


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_agreement(
    payload: AgreementCreateRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(aget_db)
):
    """
    Propose a skill swap agreement from fromUser to toUser.

    The agreement starts pending with the creator's acceptance implied.
    Both parties get an in-app notification and the recipient is emailed;
    neither side effect can fail the request.
    """
    data = payload.agreement_data

    try:
        from_user = await get_user_by_username(db, payload.from_user)
        to_user = await get_user_by_username(db, payload.to_user)

        if not from_user or not to_user:
            raise NotFoundError("One or both users not found")

        # Stored as sent; the enum only classifies it
        if AgreementType(data.agreement_type) is AgreementType.other and data.agreement_type != AgreementType.other.value:
            logger.warning(f"Unrecognised agreement type '{data.agreement_type}', classified as 'other'")

        skills = [skill.model_dump(by_alias=True) for skill in data.skills]

        agreement = SwopAgreement(
            swop_id=generate_swop_id(),
            from_user=from_user.username,
            to_user=to_user.username,
            agreement_status=AgreementStatus.pending.value,
            agreement_title=data.agreement_title,
            agreement_type=data.agreement_type,
            terms=data.terms,
            timeline_days=calculate_timeline_days(skills),
            meeting_location=data.meeting_location,
            communication_method=data.communication_method,
            dispute_resolution=data.dispute_resolution,
            confidentiality=data.confidentiality,
            termination_clause=data.termination_clause,
            special_conditions=data.special_conditions,
            skills=skills,
            from_user_accepted=True,
            to_user_accepted=False,
        )
        db.add(agreement)
        await db.commit()

        # A failed notification rolls the session back and expires loaded rows
        swop_id = agreement.swop_id
        creator, recipient = from_user.username, to_user.username
        recipient_email, recipient_name = to_user.email, to_user.display_name
        response = {
            "success": True,
            "message": "Skill swap agreement created successfully and sent for approval",
            "agreement": {
                "id": agreement.id,
                "swop_id": swop_id,
                "status": agreement.agreement_status,
            }
        }

        logger.info(f"Agreement {swop_id} created by {creator} for {recipient}")

        await emit_notification(
            db,
            user_id=recipient,
            type=NotificationType.SKILL_AGREEMENT_CREATED,
            title="New Skill Swap Agreement",
            message=f'{creator} has proposed a skill swap agreement: "{data.agreement_title}"',
            related_id=swop_id,
            related_username=creator,
            metadata={
                "agreementTitle": data.agreement_title,
                "agreementType": data.agreement_type,
                "skillsCount": len(skills),
                "skills": [skill["skillName"] for skill in skills],
            },
        )
        await emit_notification(
            db,
            user_id=creator,
            type=NotificationType.SKILL_AGREEMENT_SENT,
            title="Skill Swap Agreement Sent",
            message=f"You sent a skill swap agreement to {recipient}. Waiting for their acceptance.",
            related_id=swop_id,
            related_username=recipient,
            metadata={
                "agreementTitle": data.agreement_title,
                "recipient": recipient,
            },
        )

        background_tasks.add_task(
            notify_agreement_proposed,
            recipient_email=recipient_email,
            recipient_name=recipient_name,
            from_user=creator,
            agreement_title=data.agreement_title,
            swop_id=swop_id,
        )

        return response
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Create skill agreement error: {str(e)}", exc_info=True)
        raise InternalError()


@router.get("/{swop_id}")
async def get_agreement(
    swop_id: str,
    db: AsyncSession = Depends(aget_db)
):
    """Get an agreement by its swop id."""
    try:
        agreement = await _get_agreement_or_404(db, swop_id)
        return {"success": True, "agreement": _format_agreement(agreement)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get agreement error: {str(e)}", exc_info=True)
        raise InternalError()


@router.post("/{swop_id}/accept")
async def accept_agreement(
    swop_id: str,
    background_tasks: BackgroundTasks,
    payload: Optional[AgreementActionRequest] = Body(None),
    db: AsyncSession = Depends(aget_db)
):
    """
    Accept a pending agreement. Only the recipient may accept, and only once.

    The write is conditioned on the agreement still being pending and not yet
    accepted, so of two concurrent accepts only one succeeds.
    """
    username = _require_username(payload)

    try:
        agreement = await _get_agreement_or_404(db, swop_id)

        if agreement.to_user != username:
            raise ForbiddenError("Only the agreement recipient can accept this agreement")

        if agreement.to_user_accepted:
            raise ConflictError("Agreement already accepted", status_code=status.HTTP_400_BAD_REQUEST)

        if agreement.agreement_status != AgreementStatus.pending.value:
            raise ConflictError("Agreement is no longer pending", status_code=status.HTTP_400_BAD_REQUEST)

        result = await db.execute(
            update(SwopAgreement)
            .where(
                and_(
                    SwopAgreement.swop_id == swop_id,
                    SwopAgreement.to_user_accepted == False,
                    SwopAgreement.agreement_status == AgreementStatus.pending.value,
                )
            )
            .values(
                to_user_accepted=True,
                agreement_status=AgreementStatus.accepted.value,
                updated_at=datetime.utcnow(),
            )
        )
        if result.rowcount == 0:
            await db.rollback()
            raise ConflictError("Agreement already accepted", status_code=status.HTTP_400_BAD_REQUEST)

        await db.commit()
        await db.refresh(agreement)
        snapshot = _format_agreement(agreement)

        await _notify_creator(db, background_tasks, snapshot, username, accepted=True)

        return {
            "success": True,
            "message": "Agreement accepted successfully",
            "agreement": snapshot
        }
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Accept agreement error: {str(e)}", exc_info=True)
        raise InternalError()


@router.post("/{swop_id}/decline")
async def decline_agreement(
    swop_id: str,
    background_tasks: BackgroundTasks,
    payload: Optional[AgreementActionRequest] = Body(None),
    db: AsyncSession = Depends(aget_db)
):
    """
    Decline an agreement. Only the recipient may decline.

    No check is made on the current status, so an agreement that was
    already declined can be declined again.
    """
    username = _require_username(payload)
    reason = payload.reason or DEFAULT_DECLINE_REASON

    try:
        agreement = await _get_agreement_or_404(db, swop_id)

        if agreement.to_user != username:
            raise ForbiddenError("Only the agreement recipient can decline this agreement")

        agreement.agreement_status = AgreementStatus.declined.value
        agreement.updated_at = datetime.utcnow()
        await db.commit()
        await db.refresh(agreement)
        snapshot = _format_agreement(agreement)

        await _notify_creator(db, background_tasks, snapshot, username, accepted=False, reason=reason)

        return {
            "success": True,
            "message": "Agreement declined successfully",
            "agreement": snapshot
        }
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Decline agreement error: {str(e)}", exc_info=True)
        raise InternalError()
