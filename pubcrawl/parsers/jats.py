from __future__ import annotations
from typing import Any, List, Optional, Sequence, Union

from ..errors import NotFoundError
from ..schemas import FullTextRecord, FullTextSection
from ..utils.logger import get_logger
from .document import JATS_REPEATABLE, DocumentHandle, attr, child, children, find_all
from .treetext import extract_text

log = get_logger("parsers.jats")

SUBHEADING = "###"


def _section_content(sec: Any) -> str:
    """Direct paragraphs, then each nested section under a ``### title`` marker."""
    parts: List[str] = [t for t in (extract_text(p) for p in children(sec, "p")) if t]
    for sub in children(sec, "sec"):
        title = extract_text(child(sub, "title"))
        if title:
            parts.append(f"\n{SUBHEADING} {title}")
        body = _section_content(sub)
        if body:
            parts.append(body)
    return "\n\n".join(parts)


def parse_sections(body: Any) -> List[FullTextSection]:
    """One flat section per top-level ``sec``; loose body paragraphs lead as an untitled section."""
    sections: List[FullTextSection] = []
    loose = [t for t in (extract_text(p) for p in children(body, "p")) if t]
    if loose:
        sections.append(FullTextSection(title="", content="\n\n".join(loose)))
    for sec in children(body, "sec"):
        sections.append(FullTextSection(
            title=extract_text(child(sec, "title")),
            content=_section_content(sec),
        ))
    return sections


def _captions(body: Any, tag: str) -> List[str]:
    out: List[str] = []
    for node in find_all(body, tag):
        label = extract_text(child(node, "label"))
        caption = extract_text(child(node, "caption"))
        text = f"{label}: {caption}" if label else caption
        if text:
            out.append(text)
    return out


def parse_figure_captions(body: Any) -> List[str]:
    return _captions(body, "fig")


def parse_table_captions(body: Any) -> List[str]:
    return _captions(body, "table-wrap")


def count_references(back: Any) -> int:
    return len(find_all(back, "ref"))


def filter_sections(sections: List[FullTextSection], requested: Optional[Sequence[str]]) -> List[FullTextSection]:
    if not requested:
        return sections
    wanted = [r.lower().strip() for r in requested if r and r.strip()]
    return [s for s in sections if any(w in s.title.lower() for w in wanted)]


def _article_id(front: Any, id_type: str) -> str:
    for aid in children(child(front, "article-meta"), "article-id"):
        if attr(aid, "pub-id-type") == id_type:
            return extract_text(aid)
    return ""


def parse_full_text(
    xml: Union[str, bytes],
    pmid: str = "",
    pmcid: str = "",
    sections: Optional[Sequence[str]] = None,
) -> FullTextRecord:
    """
    Parse a PMC efetch payload (``pmc-articleset/article`` or a bare ``article``).

    Caller-supplied ids take precedence over ids found in the front matter.
    """
    handle = DocumentHandle.parse(xml, JATS_REPEATABLE)
    article = handle.get("pmc-articleset", "article") or handle.get("article")
    if not isinstance(article, dict):
        raise NotFoundError(f"Could not parse full text for {pmcid or pmid}", pmcid or pmid or None)

    front = child(article, "front")
    body = child(article, "body")
    if body is None:
        log.warning(f"[jats] {pmcid or pmid}: article has no body")

    pmc = pmcid or _article_id(front, "pmc") or _article_id(front, "pmcid")
    if pmc and not pmc.upper().startswith("PMC"):
        pmc = f"PMC{pmc}"

    return FullTextRecord(
        pmid=pmid or _article_id(front, "pmid"),
        pmcid=pmc,
        title=extract_text(child(child(child(front, "article-meta"), "title-group"), "article-title")),
        sections=filter_sections(parse_sections(body), sections),
        figure_captions=parse_figure_captions(body),
        table_captions=parse_table_captions(body),
        reference_count=count_references(child(article, "back")),
    )
