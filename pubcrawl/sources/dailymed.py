from __future__ import annotations
from typing import Any, Dict, List

from ..schemas import DailyMedHit
from .base import BaseSource


def parse_spl_hits(payload: Dict[str, Any]) -> List[DailyMedHit]:
    hits: List[DailyMedHit] = []
    for item in payload.get("data") or []:
        setid = str(item.get("setid") or "")
        if not setid:
            continue
        hits.append(DailyMedHit(
            setid=setid,
            title=str(item.get("title") or ""),
            published_date=str(item.get("published_date") or ""),
            spl_version=str(item.get("spl_version") or ""),
        ))
    return hits


class DailyMedSource(BaseSource):
    """DailyMed v2 web services: SPL search and SPL XML download."""
    name = "dailymed"

    async def search_labels(self, drug_name: str, pagesize: int = 10) -> List[DailyMedHit]:
        async def produce() -> List[DailyMedHit]:
            payload = await self.get_json("spls.json", self.params(drug_name=drug_name, pagesize=pagesize))
            return parse_spl_hits(payload)

        return await self.cached("search", f"drug:{drug_name.lower()}:{pagesize}", produce)

    async def fetch_spl_xml(self, setid: str) -> str:
        async def produce() -> str:
            return await self.get_text(f"spls/{setid}.xml")

        return await self.cached("label", f"spl:{setid}", produce)
