"""
Attendance record lifecycle: draft -> auto_reconciled -> pending_review -> verified.
"""
import logging
from typing import Optional

from fastapi import HTTPException, status

from app.models.attendance import Attendance, RecordState
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    RecordState.DRAFT: {RecordState.AUTO_RECONCILED, RecordState.PENDING_REVIEW, RecordState.VERIFIED},
    RecordState.AUTO_RECONCILED: {RecordState.AUTO_RECONCILED, RecordState.PENDING_REVIEW, RecordState.VERIFIED},
    RecordState.PENDING_REVIEW: {RecordState.PENDING_REVIEW, RecordState.AUTO_RECONCILED, RecordState.VERIFIED},
    RecordState.VERIFIED: {RecordState.PENDING_REVIEW},
}


def current_state(record: Attendance) -> RecordState:
    return record.state or RecordState.DRAFT


def can_transition(record: Attendance, target: RecordState) -> bool:
    return target in ALLOWED_TRANSITIONS[current_state(record)]


def transition(record: Attendance, target: RecordState, notes: Optional[str] = None) -> Attendance:
    """
    Move a record to a new state.

    Raises:
        HTTPException: 409 if the transition is not allowed
    """
    source = current_state(record)
    if not can_transition(record, target):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot move attendance from {source.value} to {target.value}",
        )
    record.state = target
    if target == RecordState.VERIFIED:
        record.verified_at = now_utc()
        if notes:
            record.verification_notes = notes
    elif source == RecordState.VERIFIED:
        record.verified_at = None
    logger.debug("Attendance %s: %s -> %s", record.id, source.value, target.value)
    return record


def is_frozen(record: Attendance) -> bool:
    """Verified records are not overwritten by automated reconciliation."""
    return current_state(record) == RecordState.VERIFIED


def accepts_time_out_backfill(record: Attendance) -> bool:
    """A verified record that has a time in but never got a time out may still receive one."""
    return is_frozen(record) and record.actual_time_in is not None and record.actual_time_out is None
