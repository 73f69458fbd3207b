"""
ClinicalTrials.gov v2 study JSON -> TrialSummary / TrialDetail.

Every module of ``protocolSection`` is optional upstream; missing values
become empty strings or lists, never errors.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional

from ..schemas import (
    TrialArm,
    TrialDesign,
    TrialDetail,
    TrialEligibility,
    TrialIntervention,
    TrialOutcome,
    TrialSearchResult,
    TrialSummary,
)

STUDY_URL = "https://clinicaltrials.gov/study/{nct_id}"


def get_in(d: Any, path: List[str], default: Any = None) -> Any:
    cur = d
    for k in path:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return default if cur is None else cur


def to_list(x: Any) -> List[Any]:
    if x is None:
        return []
    if isinstance(x, list):
        return x
    return [x]


def _str(v: Any) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    return "" if v is None else str(v)


def _module(study: Dict[str, Any], name: str) -> Dict[str, Any]:
    return get_in(study, ["protocolSection", name], {}) or {}


def _enrollment(design: Dict[str, Any]) -> Optional[int]:
    count = get_in(design, ["enrollmentInfo", "count"])
    try:
        return int(count) if count is not None else None
    except (TypeError, ValueError):
        return None


def study_url(nct_id: str) -> str:
    return STUDY_URL.format(nct_id=nct_id) if nct_id else ""


def study_to_summary(study: Dict[str, Any]) -> TrialSummary:
    if not isinstance(study, dict) or not study.get("protocolSection"):
        return TrialSummary()
    ident = _module(study, "identificationModule")
    status = _module(study, "statusModule")
    design = _module(study, "designModule")
    arms = _module(study, "armsInterventionsModule")

    nct_id = _str(ident.get("nctId"))
    phases = [_str(p) for p in to_list(design.get("phases")) if p]
    return TrialSummary(
        nct_id=nct_id,
        title=_str(ident.get("briefTitle")),
        status=_str(status.get("overallStatus")),
        phase="/".join(phases) or "N/A",
        conditions=[_str(c) for c in to_list(get_in(study, ["protocolSection", "conditionsModule", "conditions"]))],
        interventions=[
            TrialIntervention(type=_str(i.get("type")), name=_str(i.get("name")))
            for i in to_list(arms.get("interventions")) if isinstance(i, dict)
        ],
        enrollment=_enrollment(design),
        sponsor=_str(get_in(study, ["protocolSection", "sponsorCollaboratorsModule", "leadSponsor", "name"])),
        start_date=_str(get_in(status, ["startDateStruct", "date"])),
        completion_date=_str(get_in(status, ["completionDateStruct", "date"])),
        study_type=_str(design.get("studyType")),
        url=study_url(nct_id),
    )


def parse_trial_search(payload: Dict[str, Any]) -> TrialSearchResult:
    results = [study_to_summary(s) for s in to_list(payload.get("studies"))]
    total = payload.get("totalCount")
    return TrialSearchResult(results=results, total_count=total if isinstance(total, int) else len(results))


def _outcomes(items: Any) -> List[TrialOutcome]:
    return [
        TrialOutcome(measure=_str(o.get("measure")), description=_str(o.get("description")),
                     time_frame=_str(o.get("timeFrame")))
        for o in to_list(items) if isinstance(o, dict)
    ]


def parse_trial_detail(study: Dict[str, Any], nct_id: str = "") -> TrialDetail:
    summary = study_to_summary(study)
    ident = _module(study, "identificationModule")
    eligibility = _module(study, "eligibilityModule")
    design = _module(study, "designModule")
    arms = _module(study, "armsInterventionsModule")
    outcomes = _module(study, "outcomesModule")
    contacts = _module(study, "contactsLocationsModule")

    masking = get_in(design, ["designInfo", "maskingInfo"], {}) or {}
    officials = [o for o in to_list(contacts.get("overallOfficials")) if isinstance(o, dict)]
    references = [r for r in to_list(get_in(study, ["protocolSection", "referencesModule", "references"])) if isinstance(r, dict)]

    fields = summary.model_dump()
    fields["nct_id"] = summary.nct_id or nct_id
    fields["url"] = study_url(fields["nct_id"])
    return TrialDetail(
        **fields,
        official_title=_str(ident.get("officialTitle")),
        summary=_str(get_in(study, ["protocolSection", "descriptionModule", "briefSummary"])),
        eligibility=TrialEligibility(
            criteria=_str(eligibility.get("eligibilityCriteria")),
            gender=_str(eligibility.get("sex")),
            minimum_age=_str(eligibility.get("minimumAge")),
            maximum_age=_str(eligibility.get("maximumAge")),
            healthy_volunteers=_str(eligibility.get("healthyVolunteers")),
        ),
        design=TrialDesign(
            allocation=_str(get_in(design, ["designInfo", "allocation"])),
            intervention_model=_str(get_in(design, ["designInfo", "interventionModel"])),
            primary_purpose=_str(get_in(design, ["designInfo", "primaryPurpose"])),
            masking=_str(masking.get("masking")),
            who_masked=[_str(w) for w in to_list(masking.get("whoMasked"))],
        ),
        arms=[
            TrialArm(label=_str(a.get("label")), type=_str(a.get("type")), description=_str(a.get("description")),
                     intervention_names=[_str(n) for n in to_list(a.get("interventionNames"))])
            for a in to_list(arms.get("armGroups")) if isinstance(a, dict)
        ],
        primary_outcomes=_outcomes(outcomes.get("primaryOutcomes")),
        secondary_outcomes=_outcomes(outcomes.get("secondaryOutcomes")),
        locations_count=len(to_list(contacts.get("locations"))),
        lead_investigator=_str(officials[0].get("name")) if officials else "",
        associated_pmids=[_str(r.get("pmid")) for r in references if r.get("pmid")],
    )
