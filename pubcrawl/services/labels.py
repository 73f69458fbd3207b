"""
Drug label operations across jurisdictions: US prescribing information
(DailyMed SPL), UK SmPC (eMC), side-by-side comparison and approval lookup
by indication (openFDA + eMC).
"""
from __future__ import annotations
import asyncio
from typing import Dict, List, Optional, Sequence

from ..errors import NotFoundError
from ..labels.compare import Outcome, compare_labels
from ..labels.crosswalk import filter_section_map
from ..normalize.approvals import merge_approvals
from ..normalize.drug_names import unique_names
from ..parsers.smpc import best_product, parse_smpc_label
from ..parsers.spl import best_label_hit, parse_spl_label, resolve_loinc_codes
from ..schemas import ComparisonRecord, DrugApprovalEntry, EmcProduct, IndicationSearchResult, LabelRecord
from ..sources.dailymed import DailyMedSource
from ..sources.emc import EmcSource
from ..sources.openfda import OpenFdaSource
from ..utils.cache import TTLCache
from ..utils.config import Settings, load_settings
from ..utils.logger import get_logger, set_level

log = get_logger("services.labels")

MAX_CONCURRENT_EMC = 5


class LabelService:
    def __init__(self, dailymed: DailyMedSource, emc: EmcSource, openfda: OpenFdaSource):
        self.dailymed = dailymed
        self.emc = emc
        self.openfda = openfda

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, cache: Optional[TTLCache] = None) -> "LabelService":
        settings = settings or load_settings()
        set_level(settings.log_level)
        cache = cache if cache is not None else TTLCache(settings.cache.max_entries)
        return cls(
            DailyMedSource.from_settings(settings, cache=cache),
            EmcSource.from_settings(settings, cache=cache),
            OpenFdaSource.from_settings(settings, cache=cache),
        )

    async def aclose(self) -> None:
        for source in (self.dailymed, self.emc, self.openfda):
            await source.aclose()

    async def get_uspi(self, drug: str, sections: Optional[Sequence[str]] = None) -> LabelRecord:
        hits = await self.dailymed.search_labels(drug)
        best = best_label_hit(hits, drug)
        if best is None:
            raise NotFoundError(f'No FDA labelling found for "{drug}"', drug)
        xml = await self.dailymed.fetch_spl_xml(best.setid)
        return parse_spl_label(
            xml,
            setid=best.setid,
            drug_name=best.title,
            codes=resolve_loinc_codes(sections),
            spl_version=best.spl_version or None,
            published_date=best.published_date or None,
        )

    async def get_smpc(self, drug: str, sections: Optional[Sequence[str]] = None) -> LabelRecord:
        best = best_product(await self.emc.search(drug), drug)
        if best is None:
            raise NotFoundError(f'No SmPC found for "{drug}" on eMC', drug)
        html = await self.emc.fetch_smpc_html(best.product_id)
        return parse_smpc_label(html, best.product_id, drug_name=best.name, requested=sections)

    async def compare_labels(self, drug: str, topics: Optional[Sequence[str]] = None) -> ComparisonRecord:
        """
        Fetch both labels concurrently and pair them by topic. One side failing
        still yields a record; both failing raises AggregateFailure.
        """
        mappings = filter_section_map(topics)
        if not mappings:
            raise NotFoundError("No matching section mappings found for the requested topics")

        us, uk = await asyncio.gather(
            self.get_uspi(drug, [m.us_code for m in mappings]),
            self.get_smpc(drug, [m.uk_code for m in mappings]),
            return_exceptions=True,
        )
        return compare_labels(drug, Outcome.settle(us), Outcome.settle(uk), mappings)

    async def _uk_products(self, names: List[str]) -> Dict[str, EmcProduct]:
        """Best eMC product per name, at most MAX_CONCURRENT_EMC searches in flight."""
        sem = asyncio.Semaphore(MAX_CONCURRENT_EMC)

        async def lookup(name: str) -> List[EmcProduct]:
            async with sem:
                return await self.emc.search(name)

        settled = await asyncio.gather(*(lookup(n) for n in names), return_exceptions=True)
        found: Dict[str, EmcProduct] = {}
        for name, result in zip(names, settled):
            outcome = Outcome.settle(result)
            if outcome.error:
                log.warning(f"[labels] eMC lookup for '{name}' failed, treating as not UK-listed: {outcome.error}")
                continue
            product = best_product(outcome.value or [], name)
            if product is not None:
                found[name] = product
        return found

    async def search_by_indication(self, condition: str, max_results: int = 10) -> IndicationSearchResult:
        fda = await self.openfda.search_by_indication(condition, limit=max_results)
        if not fda:
            raise NotFoundError(f'No drugs found for "{condition}" in FDA labelling', condition)

        uk = await self._uk_products(unique_names(d.generic_name for d in fda))
        us_entries = [
            DrugApprovalEntry(
                name=d.generic_name,
                brand_name=d.brand_name,
                manufacturer=d.manufacturer,
                us_approved=True,
                us_setid=d.set_id or None,
            )
            for d in fda
        ]
        uk_entries = [
            DrugApprovalEntry(name=name, manufacturer=p.company, uk_approved=True, uk_product_id=p.product_id)
            for name, p in uk.items()
        ]
        drugs = merge_approvals(us_entries, uk_entries)
        log.info(f"[labels] '{condition}': {len(drugs)} drugs, {sum(d.uk_approved for d in drugs)} UK-listed")
        return IndicationSearchResult(condition=condition, drugs=drugs[:max_results])
