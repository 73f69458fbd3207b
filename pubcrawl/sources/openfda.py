from __future__ import annotations
from typing import Any, Dict, List

from ..errors import SourceError
from ..normalize.drug_names import normalize_drug_name
from ..schemas import OpenFdaDrug
from ..utils.logger import get_logger
from .base import BaseSource

log = get_logger("sources.openfda")


def _first(values: Any) -> str:
    if isinstance(values, list):
        return str(values[0]) if values else ""
    return str(values or "")


def parse_indication_results(payload: Dict[str, Any]) -> List[OpenFdaDrug]:
    """One drug per canonical generic name; the first label seen supplies brand, manufacturer and set id."""
    seen: Dict[str, OpenFdaDrug] = {}
    for result in payload.get("results") or []:
        openfda = result.get("openfda") or {}
        generic = _first(openfda.get("generic_name"))
        key = normalize_drug_name(generic)
        if not key or key in seen:
            continue
        seen[key] = OpenFdaDrug(
            generic_name=generic,
            brand_name=_first(openfda.get("brand_name")),
            manufacturer=_first(openfda.get("manufacturer_name")),
            set_id=_first(openfda.get("spl_set_id")),
        )
    return list(seen.values())


class OpenFdaSource(BaseSource):
    """openFDA drug label endpoint."""
    name = "openfda"

    def params(self, **extra: Any) -> Dict[str, Any]:
        return super().params(api_key=self.settings.api_key, **extra)

    async def search_by_indication(self, condition: str, limit: int = 20) -> List[OpenFdaDrug]:
        async def produce() -> List[OpenFdaDrug]:
            search = f'indications_and_usage:"{condition}"'
            try:
                payload = await self.get_json("", self.params(search=search, limit=limit))
            except SourceError as e:
                # openFDA answers "no matches" with a 404
                if e.status != 404:
                    raise
                payload = {}
            drugs = parse_indication_results(payload)
            log.debug(f"[openfda] {len(drugs)} distinct drugs for '{condition}'")
            return drugs

        return await self.cached("search", f"indication:{condition.lower()}:{limit}", produce)
