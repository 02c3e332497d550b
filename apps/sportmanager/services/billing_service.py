"""
Billing calculation service.

Pure functions over already-fetched records: a player's monthly billing
status and the month-by-month payment schedule of a session. Nothing here
touches the database.
"""

import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from sportmanager.utils.constants import BILLING_FREE_MONTHS, BILLING_GRACE_DAYS
from sportmanager.utils.datetime_utils import (
    add_months,
    days_between,
    end_of_month,
    ensure_aware,
    format_month,
    now_local,
    start_of_month,
)

logger = logging.getLogger(__name__)

PaymentKey = Tuple[int, int, int]  # (subject_id, year, month)


# ============================================================================
# Monthly billing status
# ============================================================================

def _billing(status: str, label: str, due_month: Optional[str] = None, days_overdue: int = 0) -> Dict:
    return {
        "status": status,
        "label": label,
        "due_month": due_month,
        "days_overdue": days_overdue,
    }


def build_monthly_billing(
    player,
    now: Optional[datetime] = None,
    free_months: int = BILLING_FREE_MONTHS,
    grace_days: int = BILLING_GRACE_DAYS,
) -> Dict:
    """
    Derive the current month's billing status for a player.

    Args:
        player: Any object with monthly_fee, created_at and last_payment_date
        now: Evaluation time (defaults to now in the application timezone)
        free_months: Months after signup before any fee is due
        grace_days: Days into the month a payment is pending before overdue

    Returns:
        Dict with status (na, not_due, paid, pending, overdue or error),
        label, due_month ("YYYY-MM" or None) and days_overdue.
    """
    try:
        monthly_fee = float(player.monthly_fee or 0)
        if monthly_fee <= 0:
            return _billing("na", "No monthly fee")

        now = ensure_aware(now) if now is not None else now_local()
        created_at = ensure_aware(player.created_at) or now
        trial_end = add_months(created_at, free_months)
        if now < trial_end:
            return _billing("not_due", "Not due yet (first month)")

        month_start = start_of_month(now)
        due_month = format_month(now.year, now.month)

        last_payment = ensure_aware(player.last_payment_date)
        if last_payment is not None and last_payment >= month_start:
            return _billing("paid", "Paid this month", due_month)

        elapsed = days_between(month_start, now)
        if elapsed <= grace_days:
            return _billing("pending", "Pending this month", due_month)
        return _billing("overdue", "Overdue this month", due_month, max(0, elapsed - grace_days))
    except Exception as e:
        logger.error(f"Error calculating billing for player {getattr(player, 'id', None)}: {e}")
        return _billing("error", "Error calculating billing")


# ============================================================================
# Payment schedule
# ============================================================================

def iter_session_months(start_date: date, end_date: date) -> List[Dict[str, int]]:
    """
    List every calendar month from start_date's month through end_date's month.

    Returns:
        [{"year": 2025, "month": 1}, ...] in chronological order
    """
    months = []
    cursor = date(start_date.year, start_date.month, 1)
    while cursor <= end_date:
        months.append({"year": cursor.year, "month": cursor.month})
        cursor = add_months(cursor, 1)
    return months


def is_month_past(year: int, month: int, now: Optional[datetime] = None) -> bool:
    """True when the month's last instant (23:59:59.999 local) is before now."""
    now = ensure_aware(now) if now is not None else now_local()
    tz = now.tzinfo if hasattr(now.tzinfo, "localize") else None
    return end_of_month(year, month, tz) < now


def subject_base_amount(subject, subject_type: str) -> float:
    """Monthly fee for players, agreed salary for coaches."""
    if subject_type == "player":
        return float(subject.monthly_fee or 0)
    return float(subject.agreed_salary or 0)


def _subject_summary(subject, subject_type: str, base_amount: float) -> Dict:
    summary = {
        "id": subject.id,
        "full_name": subject.full_name,
        "base_amount": base_amount,
    }
    if subject_type == "player":
        group = subject.group
        summary["group"] = group.value if hasattr(group, "value") else group
    else:
        summary["specialization"] = subject.specialization
    return summary


def build_payment_schedule(
    start_date: date,
    end_date: date,
    subjects: Iterable,
    subject_type: str,
    payments: Mapping[PaymentKey, object],
    now: Optional[datetime] = None,
) -> Dict:
    """
    Merge a session's month range with existing payment records.

    Args:
        start_date: Session start date
        end_date: Session end date
        subjects: Players or coaches on the session roster
        subject_type: "player" or "coach"
        payments: Existing payments keyed by (subject_id, year, month)
        now: Evaluation time for deriving delayed/pending

    Returns:
        {"months": [...], "schedule": [{"subject": {...}, "rows": [...]}]}
    """
    now = ensure_aware(now) if now is not None else now_local()
    months = iter_session_months(start_date, end_date)
    past = {(m["year"], m["month"]): is_month_past(m["year"], m["month"], now) for m in months}

    schedule = []
    for subject in subjects:
        base_amount = subject_base_amount(subject, subject_type)
        rows = []
        for m in months:
            year, month = m["year"], m["month"]
            payment = payments.get((subject.id, year, month))
            if payment is not None:
                status = payment.status.value if hasattr(payment.status, "value") else payment.status
                amount = payment.amount if payment.amount is not None else base_amount
                paid_at = ensure_aware(payment.paid_at)
                notes = payment.notes or ""
            else:
                status = "delayed" if past[(year, month)] else "pending"
                amount = base_amount
                paid_at = None
                notes = ""
            rows.append({
                "year": year,
                "month": month,
                "status": status,
                "amount": amount,
                "paid_at": paid_at.isoformat() if paid_at else None,
                "notes": notes,
            })
        schedule.append({
            "subject": _subject_summary(subject, subject_type, base_amount),
            "rows": rows,
        })

    return {"months": months, "schedule": schedule}
