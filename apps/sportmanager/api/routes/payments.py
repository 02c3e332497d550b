"""Session payment route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.api.auth_dependencies import require_team_staff
from sportmanager.api.routes import envelope, service_error
from sportmanager.database.db import get_db_session
from sportmanager.models.schemas import MarkPaidRequest, PaymentStatusRequest
from sportmanager.services import payment_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/payments/{session_id}/mark-paid")
async def mark_paid(
    session_id: int,
    payload: MarkPaidRequest,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Mark a player's or coach's month paid.

    Year and month default to the current month; repeated calls update the
    same record.
    """
    try:
        payment = await payment_service.mark_paid(
            session,
            principal["team_id"],
            session_id,
            payload.subject_id,
            payload.subject_type,
            amount=payload.amount,
            year=payload.year,
            month=payload.month,
            notes=payload.notes,
        )
        return envelope({"payment": payment}, "Payment recorded")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "recording payment")


@router.get("/api/payments/{session_id}")
async def list_payments(
    session_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        payments = await payment_service.list_payments(session, principal["team_id"], session_id)
        return envelope({"count": len(payments), "payments": payments}, "Payments retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching payments")


@router.get("/api/payments/{session_id}/schedule")
async def get_payment_schedule(
    session_id: int,
    subject_type: Optional[str] = Query("player"),
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    """Month-by-month payment grid for the session's players or coaches."""
    try:
        schedule = await payment_service.get_payment_schedule(
            session, principal["team_id"], session_id, subject_type
        )
        return envelope(schedule, "Payment schedule retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "building payment schedule")


@router.put("/api/payments/{session_id}/status")
async def set_payment_status(
    session_id: int,
    payload: PaymentStatusRequest,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        payment = await payment_service.set_payment_status(
            session,
            principal["team_id"],
            session_id,
            payload.subject_id,
            payload.subject_type,
            payload.year,
            payload.month,
            payload.status,
            amount=payload.amount,
            notes=payload.notes,
        )
        return envelope({"payment": payment}, "Payment status updated")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "updating payment status")
