"""
Biometric device export parser.

Devices export a tab-separated text file with a header row:

    No<TAB>DevNo<TAB>UserId<TAB>Name<TAB>Mode<TAB>DateTime
    1	1	10	Nodado A	FP	2025-11-05  05:50:25

Lines that cannot be parsed are logged and skipped; parsing never raises for
bad content.
"""
import logging
import re
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_MULTI_SPACE = re.compile(r"\s{2,}")
_DATETIME_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2})")
_NON_DATETIME_CHARS = re.compile(r"[^\d\-\s:]")


@dataclass(frozen=True)
class RawScan:
    """One biometric clock event as exported by the device."""

    name: str
    scanned_at: datetime
    normalized_name: str
    no: Optional[str] = None
    dev_no: Optional[str] = None
    user_id: Optional[str] = None
    mode: Optional[str] = None

    @property
    def scan_date(self) -> date:
        return self.scanned_at.date()


def normalize_name(name: str) -> str:
    """
    Normalize a device name for matching.

    "Cabarliza M." -> "cabarliza m", "Ogao-ogao" -> "ogao ogao"
    """
    normalized = name.strip().replace(".", "").replace("-", " ")
    normalized = re.sub(r"\s+", " ", normalized)
    return normalized.lower()


def _clean_datetime(raw: str) -> str:
    value = raw.replace("\0", "")
    value = _MULTI_SPACE.sub(" ", value)
    value = _NON_DATETIME_CHARS.sub("", value).strip()
    # Corrupt exports sometimes append a line number: "2025-01-13 22:26:181"
    if len(value) > 19:
        match = _DATETIME_PREFIX.match(value)
        if match:
            value = match.group(1)
    return value


def _split_columns(line: str) -> Optional[List[str]]:
    columns = re.split(r"\t+", line)
    if len(columns) >= 6:
        return columns
    parts = _MULTI_SPACE.split(line)
    if len(parts) >= 6:
        # The datetime itself may contain a double space
        return parts[:5] + [" ".join(parts[5:])]
    return None


def parse_line(line: str) -> Optional[RawScan]:
    """Parse one data line, or return None if it is not a usable scan."""
    line = line.replace("\0", "").strip()
    if not line:
        return None

    columns = _split_columns(line)
    if columns is None:
        logger.debug("Skipping line with too few columns: %r", line)
        return None

    name = columns[3].strip()
    datetime_str = columns[5].strip()
    if not name or not datetime_str:
        return None

    cleaned = _clean_datetime(datetime_str)
    try:
        scanned_at = datetime.strptime(cleaned, DATETIME_FORMAT)
    except ValueError as e:
        logger.warning(
            "Failed to parse datetime: line=%r datetime_str=%r columns=%d error=%s",
            line, cleaned, len(columns), e,
        )
        return None

    return RawScan(
        name=name,
        scanned_at=scanned_at,
        normalized_name=normalize_name(name),
        no=columns[0].strip() or None,
        dev_no=columns[1].strip() or None,
        user_id=columns[2].strip() or None,
        mode=columns[4].strip() or None,
    )


def parse_content(content: str) -> List[RawScan]:
    """
    Parse the full text of a device export.

    Args:
        content: File content (already decoded)

    Returns:
        Parsed scans in file order; the header line is skipped
    """
    content = _CONTROL_CHARS.sub("", content.replace("\0", ""))
    content = content.replace("\r\n", "\n").replace("\r", "\n")

    scans = []
    for line in content.split("\n")[1:]:
        if not line.strip():
            continue
        scan = parse_line(line)
        if scan is not None:
            scans.append(scan)
    return scans


def group_by_employee(scans: Iterable[RawScan]) -> "OrderedDict[str, List[RawScan]]":
    """Group scans by normalized name, each group sorted by scan time."""
    grouped: "OrderedDict[str, List[RawScan]]" = OrderedDict()
    for scan in scans:
        grouped.setdefault(scan.normalized_name, []).append(scan)
    for name in grouped:
        grouped[name].sort(key=lambda s: s.scanned_at)
    return grouped


def filter_by_date_range(scans: List[RawScan], date_from: date, date_to: date) -> Dict:
    """
    Split scans into those inside [date_from, date_to + 1 day] and those outside.

    The extra day keeps overnight time-outs for the last shift date.
    """
    extended_date_to = date_to + timedelta(days=1)
    within_range: List[RawScan] = []
    outside_range: List[RawScan] = []
    breakdown: Dict[str, Dict] = {}

    for scan in scans:
        in_range = date_from <= scan.scan_date <= extended_date_to
        (within_range if in_range else outside_range).append(scan)
        key = scan.scan_date.isoformat()
        entry = breakdown.setdefault(key, {"count": 0, "in_range": in_range})
        entry["count"] += 1

    summary = {
        "total_records": len(scans),
        "within_range_count": len(within_range),
        "outside_range_count": len(outside_range),
        "date_from": date_from.isoformat(),
        "date_to": date_to.isoformat(),
        "extended_date_to": extended_date_to.isoformat(),
        "unique_employees_in_range": len({s.normalized_name for s in within_range}),
        "unique_employees_outside_range": len({s.normalized_name for s in outside_range}),
        "date_breakdown": dict(sorted(breakdown.items())),
    }
    logger.info(
        "Date range filter %s..%s: %d within, %d outside",
        summary["date_from"], summary["extended_date_to"],
        summary["within_range_count"], summary["outside_range_count"],
    )
    return {"within_range": within_range, "outside_range": outside_range, "summary": summary}


def get_statistics(scans: List[RawScan]) -> Dict:
    """Basic counts for a parsed file."""
    return {
        "total_records": len(scans),
        "unique_employees": len({s.normalized_name for s in scans}),
        "date_range": {
            "start": min((s.scanned_at for s in scans), default=None),
            "end": max((s.scanned_at for s in scans), default=None),
        },
    }
