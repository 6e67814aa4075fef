"""
Biometric anomaly detection for one shift cluster.

Findings are always reported as warnings. Whether a finding changes the
record's status is decided by ``should_escalate``: only statuses without a
usable time signal are replaced by needs_manual_review.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from app.models.attendance import AMBIGUOUS_STATUSES, AttendanceStatus
from app.services.shift_window import ShiftWindow
from app.utils.datetime_utils import minutes_between

logger = logging.getLogger(__name__)

FAR_FROM_SCHEDULE_MINUTES = 120
EARLY_TIME_IN_MINUTES = 180
LATE_TIME_OUT_MINUTES = 240
EARLY_TIME_OUT_MINUTES = 180
LONG_GAP_HOURS = 12


@dataclass
class AnomalyReport:
    needs_review: bool = False
    warnings: List[str] = field(default_factory=list)

    def flag(self, message: str) -> None:
        self.needs_review = True
        self.warnings.append(message)


def detect_anomalies(
    scans: List,
    window: ShiftWindow,
    time_in: Optional[datetime],
    time_out: Optional[datetime],
) -> AnomalyReport:
    """
    Flag suspicious scan patterns around a shift date.

    Args:
        scans: The shift's scans (objects with ``scanned_at``)
        window: Scheduled window for the shift date
        time_in: Resolved time in, if any
        time_out: Resolved time out, if any

    Returns:
        AnomalyReport
    """
    report = AnomalyReport()
    day_before = window.shift_date - timedelta(days=1)
    day_after = window.shift_date + timedelta(days=1)
    relevant = sorted(
        (s.scanned_at for s in scans if day_before <= s.scanned_at.date() <= day_after),
    )
    count = len(relevant)
    sched_in, sched_out = window.scheduled_in, window.scheduled_out

    if 0 < count <= 2:
        all_far = all(
            abs(minutes_between(sched_in, t)) > FAR_FROM_SCHEDULE_MINUTES
            and abs(minutes_between(sched_out, t)) > FAR_FROM_SCHEDULE_MINUTES
            for t in relevant
        )
        if all_far:
            times = ", ".join(t.strftime("%Y-%m-%d %H:%M") for t in relevant)
            report.flag(
                f"Employee has only {count} biometric scan(s) on this date ({times}), and the scan "
                "time(s) don't match the scheduled shift times. This may indicate: wrong shift "
                "assignment, scanner testing, or the employee worked a different shift."
            )

    if time_in is not None:
        early = minutes_between(time_in, sched_in)
        if early > EARLY_TIME_IN_MINUTES:
            report.flag(
                "Time IN is %.1f hours before scheduled time (%s vs %s)"
                % (early / 60, time_in.strftime("%Y-%m-%d %H:%M"), sched_in.strftime("%Y-%m-%d %H:%M"))
            )

    if time_out is not None:
        late = minutes_between(sched_out, time_out)
        if late > LATE_TIME_OUT_MINUTES:
            report.flag(
                "Time OUT is %.1f hours after scheduled time (%s vs %s)"
                % (late / 60, time_out.strftime("%Y-%m-%d %H:%M"), sched_out.strftime("%Y-%m-%d %H:%M"))
            )
        if -late > EARLY_TIME_OUT_MINUTES:
            report.flag(
                "Time OUT is %.1f hours before scheduled time (%s vs %s). This may indicate: "
                "emergency, medical issue, or unauthorized early departure."
                % (-late / 60, time_out.strftime("%Y-%m-%d %H:%M"), sched_out.strftime("%Y-%m-%d %H:%M"))
            )

    unresolved = time_in is None and time_out is None
    if count == 2 and unresolved:
        gap_hours = int((relevant[-1] - relevant[0]).total_seconds() // 3600)
        if gap_hours > LONG_GAP_HOURS:
            report.flag(
                f"Only 2 scans found with {gap_hours} hours gap "
                f"({relevant[0].strftime('%H:%M')} and {relevant[-1].strftime('%H:%M')}), "
                "neither matches schedule"
            )

    if count > 0 and unresolved:
        times = ", ".join(t.strftime("%H:%M") for t in relevant)
        report.flag(f"No valid time IN/OUT detected from {count} scan(s) at: {times}")

    return report


def should_escalate(status: AttendanceStatus, report: AnomalyReport) -> bool:
    """True when the anomaly should replace the status with needs_manual_review."""
    return report.needs_review and status in AMBIGUOUS_STATUSES
