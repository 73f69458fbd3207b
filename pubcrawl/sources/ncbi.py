from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple

from ..parsers.pubmed import parse_links, parse_pmc_link
from .base import BaseSource

TOOL = "pubcrawl"


class NcbiSource(BaseSource):
    """NCBI E-utilities (esearch, esummary, efetch, elink)."""
    name = "ncbi"

    def params(self, **extra: Any) -> Dict[str, Any]:
        return super().params(tool=TOOL, api_key=self.settings.api_key, **extra)

    async def esearch(
        self,
        term: str,
        retmax: int = 10,
        sort: Optional[str] = None,
        db: str = "pubmed",
        datetype: Optional[str] = None,
        mindate: Optional[str] = None,
        maxdate: Optional[str] = None,
    ) -> Tuple[List[str], int]:
        """Matching ids (in upstream order) and the total hit count."""
        params = self.params(db=db, term=term, retmax=retmax, sort=sort,
                             datetype=datetype, mindate=mindate, maxdate=maxdate, retmode="json")
        key = "|".join(f"{k}={params[k]}" for k in sorted(params) if k != "api_key")

        async def produce() -> Tuple[List[str], int]:
            data = (await self.get_json("esearch.fcgi", params)).get("esearchresult") or {}
            try:
                count = int(data.get("count") or 0)
            except (TypeError, ValueError):
                count = 0
            return [str(i) for i in data.get("idlist") or []], count

        return await self.cached("search", key, produce)

    async def esummary(self, ids: List[str], db: str = "pubmed") -> Dict[str, Any]:
        if not ids:
            return {}

        async def produce() -> Dict[str, Any]:
            data = await self.get_json("esummary.fcgi", self.params(db=db, id=",".join(ids), retmode="json"))
            return data.get("result") or {}

        return await self.cached("summary", f"{db}:{','.join(ids)}", produce)

    async def efetch(self, id: str, db: str = "pubmed", rettype: str = "xml") -> str:
        async def produce() -> str:
            return await self.get_text("efetch.fcgi", self.params(db=db, id=id, rettype=rettype, retmode="xml"))

        namespace = "fulltext" if db == "pmc" else "abstract"
        return await self.cached(namespace, f"{db}:{id}:{rettype}", produce)

    async def elink(
        self,
        id: str,
        dbfrom: str = "pubmed",
        db: str = "pubmed",
        cmd: Optional[str] = None,
        linkname: Optional[str] = None,
    ) -> List[Tuple[str, Optional[float]]]:
        async def produce() -> List[Tuple[str, Optional[float]]]:
            payload = await self.get_json("elink.fcgi", self.params(
                dbfrom=dbfrom, db=db, id=id, cmd=cmd, linkname=linkname, retmode="json"))
            return parse_links(payload)

        return await self.cached("related", f"{dbfrom}:{db}:{id}:{cmd}:{linkname}", produce)

    async def pmid_to_pmcid(self, pmid: str) -> Optional[str]:
        async def produce() -> Optional[str]:
            payload = await self.get_json("elink.fcgi", self.params(
                dbfrom="pubmed", db="pmc", id=pmid, linkname="pubmed_pmc", retmode="json"))
            return parse_pmc_link(payload)

        return await self.cached("abstract", f"pmid2pmc:{pmid}", produce)
