from __future__ import annotations
from typing import List, Optional, Sequence, Tuple

from ..schemas import CrosswalkRow

# topic, US LOINC section code, UK SmPC section number
SECTION_MAP: Tuple[CrosswalkRow, ...] = (
    CrosswalkRow(topic="Indications", us_code="34067-9", uk_code="4.1"),
    CrosswalkRow(topic="Dosing", us_code="34068-7", uk_code="4.2"),
    CrosswalkRow(topic="Contraindications", us_code="34070-3", uk_code="4.3"),
    CrosswalkRow(topic="Warnings", us_code="43685-7", uk_code="4.4"),
    CrosswalkRow(topic="Drug Interactions", us_code="34073-7", uk_code="4.5"),
    CrosswalkRow(topic="Pregnancy", us_code="42228-7", uk_code="4.6"),
    CrosswalkRow(topic="Adverse Reactions", us_code="34084-4", uk_code="4.8"),
    CrosswalkRow(topic="Overdosage", us_code="34088-5", uk_code="4.9"),
    CrosswalkRow(topic="Clinical Pharmacology", us_code="34090-1", uk_code="5.1"),
)


def _row_matches(row: CrosswalkRow, request: str) -> bool:
    lower = request.lower().strip()
    if not lower:
        return False
    topic = row.topic.lower()
    return lower in topic or topic in lower or request.strip() in (row.us_code, row.uk_code)


def filter_section_map(
    topics: Optional[Sequence[str]] = None,
    table: Sequence[CrosswalkRow] = SECTION_MAP,
) -> List[CrosswalkRow]:
    """
    Rows whose topic matches any requested topic (substring either way) or
    whose US/UK code equals it exactly. No request means the whole table.
    """
    if not topics:
        return list(table)
    return [row for row in table if any(_row_matches(row, t) for t in topics)]
