"""
Clinical trial operations: study search and single-trial detail from ClinicalTrials.gov.
"""
from __future__ import annotations
import re
from typing import Optional

from ..errors import NotFoundError, SourceError
from ..schemas import TrialDetail, TrialSearchResult
from ..sources.clinicaltrials import SORT_FIELDS, ClinicalTrialsSource
from ..utils.cache import TTLCache
from ..utils.config import Settings, load_settings
from ..utils.logger import get_logger, set_level

log = get_logger("services.trials")

NCT_ID = re.compile(r"^NCT\d{8}$")

TRIAL_STATUSES = {
    "RECRUITING", "COMPLETED", "ACTIVE_NOT_RECRUITING", "NOT_YET_RECRUITING",
    "TERMINATED", "WITHDRAWN", "SUSPENDED",
}
TRIAL_PHASES = {"EARLY_PHASE1", "PHASE1", "PHASE2", "PHASE3", "PHASE4", "NA"}

# human-friendly registry wording -> v2 enum
_STATUS_MAP = {
    "recruiting": "RECRUITING",
    "not yet recruiting": "NOT_YET_RECRUITING",
    "active, not recruiting": "ACTIVE_NOT_RECRUITING",
    "completed": "COMPLETED",
    "terminated": "TERMINATED",
    "suspended": "SUSPENDED",
    "withdrawn": "WITHDRAWN",
}


def normalize_status(status: Optional[str]) -> Optional[str]:
    if not status:
        return None
    key = status.strip()
    value = _STATUS_MAP.get(key.lower(), key.upper())
    if value not in TRIAL_STATUSES:
        raise ValueError(f"Unknown trial status '{status}'; expected one of {sorted(TRIAL_STATUSES)}")
    return value


def normalize_phase(phase: Optional[str]) -> Optional[str]:
    if not phase:
        return None
    value = phase.strip().upper()
    if value not in TRIAL_PHASES:
        raise ValueError(f"Unknown trial phase '{phase}'; expected one of {sorted(TRIAL_PHASES)}")
    return value


class TrialsService:
    def __init__(self, trials: ClinicalTrialsSource):
        self.trials = trials

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, cache: Optional[TTLCache] = None) -> "TrialsService":
        settings = settings or load_settings()
        set_level(settings.log_level)
        return cls(ClinicalTrialsSource.from_settings(settings, cache=cache))

    async def aclose(self) -> None:
        await self.trials.aclose()

    async def search(
        self,
        condition: Optional[str] = None,
        intervention: Optional[str] = None,
        term: Optional[str] = None,
        status: Optional[str] = None,
        phase: Optional[str] = None,
        max_results: int = 10,
        sort: str = "relevance",
    ) -> TrialSearchResult:
        if not (condition or intervention or term):
            raise ValueError("At least one of condition, intervention, or term is required")
        if not 1 <= max_results <= 100:
            raise ValueError("max_results must be between 1 and 100")
        if sort not in SORT_FIELDS:
            raise ValueError(f"Unknown sort '{sort}'; expected one of {sorted(SORT_FIELDS)}")
        return await self.trials.search_studies(
            condition=condition,
            intervention=intervention,
            term=term,
            status=normalize_status(status),
            phase=normalize_phase(phase),
            page_size=max_results,
            sort=sort,
        )

    async def get_trial(self, nct_id: str) -> TrialDetail:
        nct_id = (nct_id or "").strip().upper()
        if not NCT_ID.match(nct_id):
            raise ValueError(f"'{nct_id}' is not a valid NCT ID (e.g. NCT12345678)")
        try:
            return await self.trials.get_study(nct_id)
        except SourceError as e:
            if e.status != 404:
                raise
            log.info(f"[trials] {nct_id} not found upstream")
            raise NotFoundError(f"Clinical trial {nct_id} not found; verify the NCT ID", nct_id) from e
