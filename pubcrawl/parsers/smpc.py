"""
UK Summary of Product Characteristics (eMC HTML) -> numbered label sections.

Segmentation is an ordered chain of strategies. Each returns a non-empty
list of boundaries or None; the next strategy runs only on None, so two
segmentations are never merged.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup, Tag

from ..schemas import EmcProduct, LabelRecord, Section
from ..utils.logger import get_logger

log = get_logger("parsers.smpc")

EMC_URL = "https://www.medicines.org.uk/emc/product/{product_id}/smpc"

# SmPC standard section numbering
SMPC_SECTION_NAMES = {
    "4.1": "Therapeutic indications",
    "4.2": "Posology and method of administration",
    "4.3": "Contraindications",
    "4.4": "Special warnings and precautions for use",
    "4.5": "Interaction with other medicinal products",
    "4.6": "Fertility, pregnancy and lactation",
    "4.7": "Effects on ability to drive and use machines",
    "4.8": "Undesirable effects",
    "4.9": "Overdose",
    "5.1": "Pharmacodynamic properties",
    "5.2": "Pharmacokinetic properties",
    "5.3": "Preclinical safety data",
    "6.1": "List of excipients",
    "6.2": "Incompatibilities",
    "6.3": "Shelf life",
    "6.4": "Special precautions for storage",
    "6.5": "Nature and contents of container",
    "6.6": "Special precautions for disposal",
}

# request keywords -> section code; first hit wins, so "contraindication" precedes "indication"
SECTION_SYNONYMS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("contraindication",), "4.3"),
    (("indication",), "4.1"),
    (("dosage", "dosing", "posology"), "4.2"),
    (("warning", "precaution"), "4.4"),
    (("interaction",), "4.5"),
    (("pregnancy", "fertility", "lactation"), "4.6"),
    (("adverse", "undesirable", "side effect"), "4.8"),
    (("overdose", "overdosage"), "4.9"),
    (("pharmacodynamic",), "5.1"),
    (("pharmacokinetic",), "5.2"),
)

STRUCTURAL_SELECTOR = "[id*='SECTION'], [id*='section'], .sectionHeading, h2, h3, h4"
INLINE_TAGS = {"a", "span", "strong", "em", "b", "i"}
BLOCK_TAGS = ["p", "div", "tr", "h1", "h2", "h3", "h4", "h5", "h6"]

_HEADING = re.compile(r"^(\d+\.?\d*)\s+(.+)", re.DOTALL)
_SMPC_HREF = re.compile(r"/emc/product/(\d+)/smpc")
_BLANKS = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class Boundary:
    code: str
    title: str
    element: Tag


def html_to_text(node: Union[Tag, str]) -> str:
    """Render markup as plain text: list items as ``- `` lines, block elements end a line."""
    soup = BeautifulSoup(str(node), "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for li in soup.find_all("li"):
        li.insert(0, "- ")
        li.append("\n")
    for el in soup.find_all(BLOCK_TAGS):
        el.append("\n")
    lines = [" ".join(line.split()) for line in soup.get_text().split("\n")]
    return _BLANKS.sub("\n\n", "\n".join(lines)).strip()


def _heading(el: Tag) -> Optional[Tuple[str, str]]:
    text = " ".join(el.get_text(" ", strip=True).split())
    m = _HEADING.match(text)
    if not m:
        return None
    return m.group(1), m.group(2).strip()


def structural_strategy(soup: BeautifulSoup) -> Optional[List[Boundary]]:
    """Headings and elements whose id/class marks them as section headings."""
    found: List[Boundary] = []
    for el in soup.select(STRUCTURAL_SELECTOR):
        hit = _heading(el)
        if hit:
            found.append(Boundary(hit[0], hit[1], el))
    return found or None


def exhaustive_strategy(soup: BeautifulSoup) -> Optional[List[Boundary]]:
    """Any leaf or inline element opening with a known SmPC section number."""
    found: List[Boundary] = []
    for el in soup.find_all(True):
        if el.find(True) is not None and el.name not in INLINE_TAGS:
            continue
        hit = _heading(el)
        if hit and hit[0] in SMPC_SECTION_NAMES:
            found.append(Boundary(hit[0], hit[1], el))
    return found or None


STRATEGIES: Tuple[Callable[[BeautifulSoup], Optional[List[Boundary]]], ...] = (
    structural_strategy,
    exhaustive_strategy,
)


def segment(soup: BeautifulSoup) -> List[Boundary]:
    for strategy in STRATEGIES:
        found = strategy(soup)
        if found:
            found = _outermost(found)
            log.debug(f"[smpc] {strategy.__name__} found {len(found)} headings")
            return found
    log.debug("[smpc] no section headings found")
    return []


def _reaches(node: Tag, target: Tag) -> bool:
    return node is target or any(d is target for d in node.descendants)


def _outermost(found: List[Boundary]) -> List[Boundary]:
    # nested inline markup (<b><span>4.1 ...</span></b>) matches at every level
    kept: List[Boundary] = []
    for b in found:
        if any(k.code == b.code and _reaches(k.element, b.element) for k in kept):
            continue
        kept.append(b)
    return kept


def _content(current: Boundary, nxt: Optional[Boundary]) -> str:
    parts: List[str] = []
    for sib in current.element.next_siblings:
        if not isinstance(sib, Tag):
            continue
        if nxt is not None and _reaches(sib, nxt.element):
            break
        text = html_to_text(sib)
        if text:
            parts.append(text)
    content = "\n".join(parts).strip()
    if content:
        return _BLANKS.sub("\n\n", content)

    # heading and body share a container instead of being siblings
    parent = current.element.parent
    if parent is None:
        return ""
    return html_to_text(parent).replace(html_to_text(current.element), "", 1).strip()


def _synonym_code(request: str) -> Optional[str]:
    for words, code in SECTION_SYNONYMS:
        if any(w in request for w in words):
            return code
    return None


def section_matches(section: Section, request: str) -> bool:
    lower = request.lower().strip()
    if not lower:
        return False
    if section.code in (request.strip(), lower):
        return True
    title = section.title.lower()
    if lower in title or (title and title in lower):
        return True
    return _synonym_code(lower) == section.code


def filter_sections(sections: List[Section], requested: Optional[Sequence[str]]) -> List[Section]:
    if not requested:
        return sections
    return [s for s in sections if any(section_matches(s, r) for r in requested)]


def parse_smpc_sections(html: str, requested: Optional[Sequence[str]] = None) -> List[Section]:
    soup = BeautifulSoup(html or "", "html.parser")
    boundaries = segment(soup)
    by_code = {}
    for i, b in enumerate(boundaries):
        nxt = boundaries[i + 1] if i + 1 < len(boundaries) else None
        by_code[b.code] = Section(code=b.code, title=b.title, content=_content(b, nxt))
    return filter_sections(list(by_code.values()), requested)


def emc_url(product_id: str) -> str:
    return EMC_URL.format(product_id=product_id)


def parse_smpc_label(
    html: str,
    product_id: str,
    drug_name: str = "",
    requested: Optional[Sequence[str]] = None,
) -> LabelRecord:
    if not drug_name:
        h1 = BeautifulSoup(html or "", "html.parser").find("h1")
        drug_name = h1.get_text(" ", strip=True) if h1 else ""
    return LabelRecord(
        jurisdiction="uk",
        drug_name=drug_name,
        identifier=product_id,
        sections=parse_smpc_sections(html, requested),
        url=emc_url(product_id),
    )


def parse_emc_search(html: str) -> List[EmcProduct]:
    """SmPC product links from an eMC search results page."""
    soup = BeautifulSoup(html or "", "html.parser")
    products: List[EmcProduct] = []
    seen = set()
    for a in soup.select("a[href*='/emc/product/']"):
        m = _SMPC_HREF.search(a.get("href") or "")
        if not m:
            continue
        product_id = m.group(1)
        name = a.get_text(" ", strip=True)
        # skip generic link text like "Health Professionals (SmPC)"
        if not name or "health professional" in name.lower() or product_id in seen:
            continue
        seen.add(product_id)
        company = ""
        parent = a.find_parent(["li", "tr", "div", "article"])
        if parent is not None:
            el = parent.select_one(".company, .manufacturer")
            company = el.get_text(" ", strip=True) if el is not None else ""
        products.append(EmcProduct(product_id=product_id, name=name, company=company))
    return products


def best_product(products: Sequence[EmcProduct], drug: str) -> Optional[EmcProduct]:
    """First product whose name contains the drug, else the first product."""
    lower = drug.lower()
    for p in products:
        if lower in p.name.lower():
            return p
    return products[0] if products else None
