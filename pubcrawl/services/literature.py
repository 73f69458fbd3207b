"""
PubMed / PMC operations: abstract, full text, citation, search, trending and related articles.
"""
from __future__ import annotations
import datetime as dt
from typing import List, Optional, Sequence

from ..cite.formatter import CitationStyle, format_citation, parse_style
from ..errors import NotFoundError
from ..parsers.jats import parse_full_text
from ..parsers.pubmed import parse_pubmed_article, parse_summaries
from ..schemas import ArticleSummary, BibliographicRecord, FullTextRecord, SearchResult, TrendingResult
from ..sources.ncbi import NcbiSource
from ..utils.cache import TTLCache
from ..utils.config import Settings, load_settings
from ..utils.logger import get_logger, set_level

log = get_logger("services.literature")

SORT_ORDERS = {"relevance": "relevance", "date": "pub_date"}
DATE_FORMAT = "%Y/%m/%d"

HIGH_IMPACT_JOURNALS = (
    "nature", "science", "cell",
    "the new england journal of medicine", "the lancet", "jama", "bmj",
    "nature medicine", "nature biotechnology", "nature genetics", "nature reviews",
    "annals of internal medicine", "plos medicine", "circulation",
    "journal of clinical oncology",
)


class LiteratureService:
    def __init__(self, ncbi: NcbiSource):
        self.ncbi = ncbi

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, cache: Optional[TTLCache] = None) -> "LiteratureService":
        settings = settings or load_settings()
        set_level(settings.log_level)
        return cls(NcbiSource.from_settings(settings, cache=cache))

    async def aclose(self) -> None:
        await self.ncbi.aclose()

    async def get_abstract(self, pmid: str, structured: bool = True) -> BibliographicRecord:
        xml = await self.ncbi.efetch(pmid, db="pubmed")
        return parse_pubmed_article(xml, pmid=pmid, structured=structured)

    async def get_full_text(
        self,
        pmid: Optional[str] = None,
        pmcid: Optional[str] = None,
        sections: Optional[Sequence[str]] = None,
    ) -> FullTextRecord:
        if not pmid and not pmcid:
            raise ValueError("Either pmid or pmcid is required")
        if not pmcid:
            pmcid = await self.ncbi.pmid_to_pmcid(pmid)
            if not pmcid:
                raise NotFoundError(
                    f"No PMC full text available for PMID {pmid}; the article may not be open access", pmid)
            log.debug(f"[literature] PMID {pmid} -> {pmcid}")

        numeric = pmcid[3:] if pmcid.upper().startswith("PMC") else pmcid
        xml = await self.ncbi.efetch(numeric, db="pmc")
        return parse_full_text(xml, pmid=pmid or "", pmcid=pmcid, sections=sections)

    async def format_citation(self, pmid: str, style: str = "apa") -> str:
        chosen: CitationStyle = parse_style(style)
        record = await self.get_abstract(pmid)
        return format_citation(record, chosen)

    async def search(
        self,
        query: str,
        max_results: int = 10,
        sort: str = "relevance",
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        article_type: Optional[str] = None,
    ) -> SearchResult:
        term = f"{query} AND {article_type}[pt]" if article_type else query
        ids, count = await self.ncbi.esearch(
            term,
            retmax=max_results,
            sort=SORT_ORDERS.get(sort, "relevance"),
            datetype="pdat" if (date_from or date_to) else None,
            mindate=date_from,
            maxdate=date_to,
        )
        if not ids:
            return SearchResult(results=[], total_count=count)
        summaries = await self.ncbi.esummary(ids)
        return SearchResult(results=parse_summaries(summaries, ids), total_count=count)

    async def trending(
        self,
        topic: str,
        days: int = 30,
        max_results: int = 20,
        high_impact_only: bool = False,
        now: Optional[dt.datetime] = None,
    ) -> TrendingResult:
        """Newest articles on ``topic`` published within the last ``days`` days."""
        if not 1 <= days <= 365:
            raise ValueError("days must be between 1 and 365")
        end = now or dt.datetime.now()
        start = end - dt.timedelta(days=days)
        term = topic
        if high_impact_only:
            journals = " OR ".join(f'"{j}"[journal]' for j in HIGH_IMPACT_JOURNALS)
            term += f" AND ({journals})"
        found = await self.search(
            term,
            max_results=max_results,
            sort="date",
            date_from=start.strftime(DATE_FORMAT),
            date_to=end.strftime(DATE_FORMAT),
        )
        return TrendingResult(results=found.results, total_count=found.total_count, topic=topic, period_days=days)

    async def related(self, pmid: str, max_results: int = 10) -> List[ArticleSummary]:
        """Neighbour articles with the upstream relevance score, in upstream order."""
        links = (await self.ncbi.elink(pmid, cmd="neighbor_score", linkname="pubmed_pubmed"))[:max_results]
        if not links:
            return []
        ids = [i for i, _ in links]
        scores = {i: (s if s is not None else 0.0) for i, s in links}
        summaries = await self.ncbi.esummary(ids)
        return parse_summaries(summaries, ids, scores=scores)
