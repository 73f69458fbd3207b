from __future__ import annotations
from typing import Any, Dict, Optional

from ..parsers.trials import parse_trial_detail, parse_trial_search
from ..schemas import TrialDetail, TrialSearchResult
from ..utils.logger import get_logger
from .base import BaseSource

log = get_logger("sources.clinicaltrials")

# projection keeps search payloads small
SEARCH_FIELDS = [
    "NCTId", "BriefTitle", "OverallStatus", "Phase",
    "Condition", "InterventionName", "InterventionType",
    "EnrollmentCount", "LeadSponsorName", "StartDate",
    "CompletionDate", "StudyType",
]

SORT_FIELDS = {
    "relevance": "",
    "last_updated": "LastUpdatePostDate",
    "start_date": "StudyFirstPostDate",
    "enrollment": "EnrollmentCount",
}


class ClinicalTrialsSource(BaseSource):
    """ClinicalTrials.gov v2 API: study search and single-study records."""
    name = "clinicaltrials"

    async def search_studies(
        self,
        condition: Optional[str] = None,
        intervention: Optional[str] = None,
        term: Optional[str] = None,
        status: Optional[str] = None,
        phase: Optional[str] = None,
        page_size: int = 10,
        sort: str = "relevance",
    ) -> TrialSearchResult:
        params: Dict[str, Any] = self.params(**{
            "query.cond": condition,
            "query.intr": intervention,
            "query.term": term,
            "filter.overallStatus": status,
            "filter.phase": phase,
            "fields": "|".join(SEARCH_FIELDS),
            "pageSize": page_size,
            "sort": SORT_FIELDS.get(sort, ""),
            "countTotal": "true",
            "format": "json",
        })

        async def produce() -> TrialSearchResult:
            result = parse_trial_search(await self.get_json("studies", params))
            log.debug(f"[clinicaltrials] {len(result.results)} of {result.total_count} studies")
            return result

        key = "|".join(f"{k}={params[k]}" for k in sorted(params))
        return await self.cached("search", key.lower(), produce)

    async def get_study(self, nct_id: str) -> TrialDetail:
        async def produce() -> TrialDetail:
            study = await self.get_json(f"studies/{nct_id}", self.params(format="json"))
            return parse_trial_detail(study, nct_id=nct_id)

        return await self.cached("trial", nct_id, produce)
