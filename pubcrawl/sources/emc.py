from __future__ import annotations
from typing import List

from ..parsers.smpc import parse_emc_search
from ..schemas import EmcProduct
from .base import BaseSource


class EmcSource(BaseSource):
    """electronic medicines compendium (medicines.org.uk) HTML pages."""
    name = "emc"

    async def search(self, drug_name: str) -> List[EmcProduct]:
        async def produce() -> List[EmcProduct]:
            return parse_emc_search(await self.get_text("emc/search", {"q": drug_name}))

        return await self.cached("search", drug_name.lower(), produce)

    async def fetch_smpc_html(self, product_id: str) -> str:
        async def produce() -> str:
            return await self.get_text(f"emc/product/{product_id}/smpc")

        return await self.cached("label", f"smpc:{product_id}", produce)
