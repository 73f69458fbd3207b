"""
FDA Structured Product Label (SPL) XML -> US label sections keyed by LOINC code.
"""
from __future__ import annotations
import datetime as dt
import re
from typing import Any, Collection, Dict, List, Optional, Sequence, Union

from dateutil import parser as dateparser

from ..schemas import DailyMedHit, LabelRecord, Section
from ..utils.logger import get_logger
from .document import SPL_REPEATABLE, DocumentHandle, attr, child, children
from .treetext import block_text, extract_text

log = get_logger("parsers.spl")

DAILYMED_URL = "https://dailymed.nlm.nih.gov/dailymed/drugInfo.cfm?setid={setid}"

# prescribing-information section names -> LOINC section code
LOINC_MAP: Dict[str, str] = {
    "boxed warning": "34066-1",
    "indications": "34067-9",
    "indications and usage": "34067-9",
    "dosage": "34068-7",
    "dosage and administration": "34068-7",
    "dosage forms": "43678-2",
    "contraindications": "34070-3",
    "warnings": "43685-7",
    "warnings and precautions": "43685-7",
    "adverse reactions": "34084-4",
    "drug interactions": "34073-7",
    "use in specific populations": "43684-0",
    "pregnancy": "42228-7",
    "overdosage": "34088-5",
    "clinical pharmacology": "34090-1",
    "description": "34089-3",
    "how supplied": "34069-5",
    "storage": "44425-7",
    "patient counseling": "34076-0",
    "medication guide": "42231-1",
}

ALL_PI_CODES: List[str] = list(dict.fromkeys(LOINC_MAP.values()))

LOINC_TITLES: Dict[str, str] = {
    "34066-1": "BOXED WARNING",
    "34067-9": "INDICATIONS AND USAGE",
    "34068-7": "DOSAGE AND ADMINISTRATION",
    "43678-2": "DOSAGE FORMS AND STRENGTHS",
    "34070-3": "CONTRAINDICATIONS",
    "43685-7": "WARNINGS AND PRECAUTIONS",
    "34084-4": "ADVERSE REACTIONS",
    "34073-7": "DRUG INTERACTIONS",
    "43684-0": "USE IN SPECIFIC POPULATIONS",
    "42228-7": "PREGNANCY",
    "34088-5": "OVERDOSAGE",
    "34090-1": "CLINICAL PHARMACOLOGY",
    "34089-3": "DESCRIPTION",
    "34069-5": "HOW SUPPLIED",
    "44425-7": "STORAGE AND HANDLING",
    "34076-0": "PATIENT COUNSELING INFORMATION",
    "42231-1": "MEDICATION GUIDE",
}

_LOINC_CODE = re.compile(r"^\d{4,5}-\d$")


def resolve_loinc_codes(sections: Optional[Sequence[str]]) -> Optional[List[str]]:
    """
    Map requested section names or literal codes to LOINC codes.

    Returns None (meaning every known code) when nothing was requested or
    nothing could be resolved.
    """
    if not sections:
        return None
    codes: List[str] = []
    for raw in sections:
        lower = raw.lower().strip()
        if not lower:
            continue
        if _LOINC_CODE.match(lower):
            codes.append(lower)
            continue
        for name, code in LOINC_MAP.items():
            if name in lower or lower in name:
                codes.append(code)
                break
    return list(dict.fromkeys(codes)) or None


def _section_content(section: Any) -> str:
    parts: List[str] = [block_text(child(section, "text"))]
    for comp in children(section, "component"):
        sub = child(comp, "section")
        if not isinstance(sub, dict):
            continue
        parts.append(extract_text(child(sub, "title")))
        parts.append(_section_content(sub))
    return "\n\n".join(p for p in parts if p)


def parse_spl_sections(structured_body: Any, codes: Optional[Collection[str]] = None) -> List[Section]:
    """
    Walk the component hierarchy and emit a Section for every section whose
    code is wanted. Nested sections are visited too; a repeated code keeps
    the last match.
    """
    wanted = set(codes) if codes else set(ALL_PI_CODES)
    found: Dict[str, Section] = {}

    def walk(node: Any) -> None:
        for comp in children(node, "component"):
            section = child(comp, "section")
            if not isinstance(section, dict):
                continue
            code = attr(child(section, "code"), "code")
            if code in wanted:
                found[code] = Section(
                    code=code,
                    title=extract_text(child(section, "title")) or LOINC_TITLES.get(code, ""),
                    content=_section_content(section),
                )
            walk(section)

    walk(structured_body)
    return list(found.values())


def extract_us_sections(structured_body: Any, codes: Optional[Collection[str]] = None) -> List[Section]:
    """``parse_spl_sections`` that falls back to every known code when a requested set matches nothing."""
    sections = parse_spl_sections(structured_body, codes)
    if not sections and codes:
        log.debug(f"[spl] no sections for codes={sorted(codes)}, retrying with all known codes")
        sections = parse_spl_sections(structured_body, None)
    return sections


def dailymed_url(setid: str) -> str:
    return DAILYMED_URL.format(setid=setid)


def parse_spl_label(
    xml: Union[str, bytes],
    setid: str = "",
    drug_name: str = "",
    codes: Optional[Collection[str]] = None,
    spl_version: Optional[str] = None,
    published_date: Optional[str] = None,
) -> LabelRecord:
    handle = DocumentHandle.parse(xml, SPL_REPEATABLE)
    body = handle.get("document", "component", "structuredBody")
    if body is None:
        log.warning(f"[spl] {setid or 'document'}: no structuredBody, returning no sections")
    setid = setid or attr(handle.get("document", "setId"), "root")
    return LabelRecord(
        jurisdiction="us",
        drug_name=drug_name or extract_text(handle.get("document", "title")),
        identifier=setid,
        sections=extract_us_sections(body, codes),
        url=dailymed_url(setid) if setid else "",
        spl_version=spl_version,
        published_date=published_date,
    )


def _published(hit: DailyMedHit) -> dt.datetime:
    try:
        return dateparser.parse(hit.published_date).replace(tzinfo=None)
    except (ValueError, OverflowError, TypeError):
        return dt.datetime.min


def best_label_hit(hits: Sequence[DailyMedHit], drug: str) -> Optional[DailyMedHit]:
    """Prefer titles naming the drug, then the most recently published label."""
    if not hits:
        return None
    lower = drug.lower()
    return sorted(hits, key=lambda h: (lower in h.title.lower(), _published(h)), reverse=True)[0]
