from __future__ import annotations
from typing import Dict, Iterable, List

from ..schemas import DrugApprovalEntry
from .drug_names import normalize_drug_name


def _merge_pair(a: DrugApprovalEntry, b: DrugApprovalEntry) -> DrugApprovalEntry:
    # approvals only accumulate; descriptive fields keep the first non-empty value
    return a.model_copy(update={
        "brand_name": a.brand_name or b.brand_name,
        "manufacturer": a.manufacturer or b.manufacturer,
        "us_approved": a.us_approved or b.us_approved,
        "uk_approved": a.uk_approved or b.uk_approved,
        "us_setid": a.us_setid or b.us_setid,
        "uk_product_id": a.uk_product_id or b.uk_product_id,
    })


def merge_approvals(*groups: Iterable[DrugApprovalEntry]) -> List[DrugApprovalEntry]:
    """
    Merge entries from any number of sources into one entry per canonical
    drug name, in first-seen order. The merged entry's ``name`` is the
    canonical key.
    """
    merged: Dict[str, DrugApprovalEntry] = {}
    for group in groups:
        for entry in group:
            key = normalize_drug_name(entry.name)
            if not key:
                continue
            entry = entry.model_copy(update={"name": key})
            merged[key] = _merge_pair(merged[key], entry) if key in merged else entry
    return list(merged.values())
