"""
Pair US and UK label sections topic by topic.

The two labels are fetched independently; each fetch is settled into an
``Outcome`` before comparison so a failure on one side never hides the other.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Generic, List, Optional, Sequence, TypeVar

from ..errors import AggregateFailure, PubCrawlError
from ..schemas import ComparisonRecord, CrosswalkRow, LabelRecord, TopicComparison
from ..utils.logger import get_logger
from .crosswalk import SECTION_MAP

log = get_logger("labels.compare")

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Settled result of one branch: a value or the reason it failed."""
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    @classmethod
    def settle(cls, result: object) -> "Outcome":
        """
        Wrap one item of ``asyncio.gather(..., return_exceptions=True)``.
        Only PubCrawlError counts as a branch failure; anything else is re-raised.
        """
        if isinstance(result, PubCrawlError):
            return cls(error=str(result))
        if isinstance(result, BaseException):
            raise result
        return cls(value=result)


def _has_sections(label: Optional[LabelRecord]) -> bool:
    return label is not None and bool(label.sections)


def pair_sections(
    us: Optional[LabelRecord],
    uk: Optional[LabelRecord],
    mappings: Sequence[CrosswalkRow] = SECTION_MAP,
) -> List[TopicComparison]:
    """One TopicComparison per mapping row, absent sides left as None."""
    us_index = us.by_code() if us is not None else {}
    uk_index = uk.by_code() if uk is not None else {}
    return [
        TopicComparison(
            topic=row.topic,
            us_section=us_index.get(row.us_code),
            uk_section=uk_index.get(row.uk_code),
        )
        for row in mappings
    ]


def compare_labels(
    drug: str,
    us: Outcome,
    uk: Outcome,
    mappings: Sequence[CrosswalkRow] = SECTION_MAP,
) -> ComparisonRecord:
    """
    Build a ComparisonRecord with exactly ``len(mappings)`` rows.

    Raises AggregateFailure when neither side produced any section; the
    per-side reasons are kept on the exception.
    """
    us_label = us.value if us.ok else None
    uk_label = uk.value if uk.ok else None

    errors: Dict[str, str] = {}
    if us.error:
        errors["us"] = us.error
    if uk.error:
        errors["uk"] = uk.error

    if not _has_sections(us_label) and not _has_sections(uk_label):
        reasons = dict(errors)
        reasons.setdefault("us", "no sections found")
        reasons.setdefault("uk", "no sections found")
        raise AggregateFailure(f"Could not retrieve labels for {drug} from either source", reasons)

    for side, reason in errors.items():
        log.warning(f"[compare] {drug}: {side} label unavailable: {reason}")

    return ComparisonRecord(
        drug=drug,
        comparisons=pair_sections(us_label, uk_label, mappings),
        us_source=us_label.url if us_label is not None else None,
        uk_source=uk_label.url if uk_label is not None else None,
        errors=errors,
    )
