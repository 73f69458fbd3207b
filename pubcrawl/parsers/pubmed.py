# pubcrawl/parsers/pubmed.py
"""
PubMed citation XML (efetch) and E-utilities JSON payloads (esummary, elink).
"""
from __future__ import annotations
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..errors import NotFoundError
from ..schemas import ArticleSummary, Author, BibliographicRecord, Section
from ..utils.logger import get_logger
from .document import PUBMED_REPEATABLE, DocumentHandle, attr, child, children
from .treetext import extract_text

log = get_logger("parsers.pubmed")

_YEAR = re.compile(r"\d{4}")
_DOI_PREFIX = re.compile(r"^\s*doi:\s*", re.IGNORECASE)


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for v in values:
        v = v.strip()
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out


def clean_doi(value: str) -> str:
    return _DOI_PREFIX.sub("", value or "").strip()


def parse_authors(author_list: Any) -> List[Author]:
    """Surname + given name, else surname + initials, else a collective (group) name."""
    authors: List[Author] = []
    for a in children(author_list, "Author"):
        last = extract_text(child(a, "LastName"))
        fore = extract_text(child(a, "ForeName"))
        initials = extract_text(child(a, "Initials"))
        collective = extract_text(child(a, "CollectiveName"))
        if last and fore:
            authors.append(Author(surname=last, given=fore, initials=initials))
        elif last and initials:
            authors.append(Author(surname=last, initials=initials))
        elif collective:
            authors.append(Author(collective=collective))
        elif last or fore:
            authors.append(Author(surname=last or fore))
    return authors


def parse_abstract(abstract: Any, structured: bool = True) -> List[Section]:
    sections = [
        Section(code="", title=attr(n, "Label"), content=extract_text(n))
        for n in children(abstract, "AbstractText")
    ]
    sections = [s for s in sections if s.content or s.title]
    if not structured and sections:
        joined = " ".join(s.content for s in sections if s.content)
        return [Section(code="", title="", content=joined)]
    return sections


def parse_mesh_terms(mesh_list: Any) -> List[str]:
    return _unique(extract_text(child(h, "DescriptorName")) for h in children(mesh_list, "MeshHeading"))


def parse_keywords(citation: Any) -> List[str]:
    return _unique(
        extract_text(k)
        for kl in children(citation, "KeywordList")
        for k in children(kl, "Keyword")
    )


def _article_id(pubmed_data: Any, id_type: str) -> str:
    for aid in children(child(pubmed_data, "ArticleIdList"), "ArticleId"):
        if attr(aid, "IdType").lower() == id_type:
            return extract_text(aid)
    return ""


def find_doi(article: Any, pubmed_data: Any) -> str:
    """First ``doi``-typed alternate identifier; ELocationID wins over ArticleIdList."""
    for eid in children(article, "ELocationID"):
        if attr(eid, "EIdType").lower() == "doi":
            doi = clean_doi(extract_text(eid))
            if doi:
                return doi
    return clean_doi(_article_id(pubmed_data, "doi"))


def _publication_year(journal_issue: Any) -> str:
    pub_date = child(journal_issue, "PubDate")
    year = extract_text(child(pub_date, "Year"))
    if year:
        return year
    m = _YEAR.search(extract_text(child(pub_date, "MedlineDate")))
    return m.group(0) if m else ""


def _record(article: Any, structured: bool) -> Optional[BibliographicRecord]:
    citation = child(article, "MedlineCitation")
    data = child(citation, "Article")
    if not isinstance(data, dict):
        return None
    pubmed_data = child(article, "PubmedData")
    journal = child(data, "Journal")
    issue = child(journal, "JournalIssue")

    return BibliographicRecord(
        pmid=extract_text(child(citation, "PMID")) or _article_id(pubmed_data, "pubmed"),
        title=extract_text(child(data, "ArticleTitle")),
        authors=parse_authors(child(data, "AuthorList")),
        journal=extract_text(child(journal, "Title")) or extract_text(child(journal, "ISOAbbreviation")),
        year=_publication_year(issue),
        volume=extract_text(child(issue, "Volume")),
        issue=extract_text(child(issue, "Issue")),
        pages=extract_text(child(child(data, "Pagination"), "MedlinePgn")),
        doi=find_doi(data, pubmed_data),
        abstract=parse_abstract(child(data, "Abstract"), structured=structured),
        keywords=parse_keywords(citation),
        mesh_terms=parse_mesh_terms(child(citation, "MeshHeadingList")),
        pmc_id=_article_id(pubmed_data, "pmc") or None,
    )


def parse_pubmed_article(
    xml: Union[str, bytes],
    pmid: Optional[str] = None,
    structured: bool = True,
) -> BibliographicRecord:
    """
    Build one BibliographicRecord from efetch XML.

    With ``pmid`` the matching PubmedArticle is used, otherwise the first.
    Raises NotFoundError when the set is missing or has no usable article.
    """
    handle = DocumentHandle.parse(xml, PUBMED_REPEATABLE)
    articles = children(handle.get("PubmedArticleSet"), "PubmedArticle")
    if not articles:
        raise NotFoundError(f"No article found for PMID {pmid}" if pmid else "No article found", pmid)

    records = [r for r in (_record(a, structured) for a in articles) if r is not None]
    if not records:
        raise NotFoundError(f"No article data found for PMID {pmid}" if pmid else "No article data found", pmid)
    if pmid:
        for r in records:
            if r.pmid == pmid:
                return r
        log.debug(f"[pubmed] PMID {pmid} not in set, using first of {len(records)}")
    return records[0]


# ---- E-utilities JSON ----

def _summary_authors(authors: Any) -> List[str]:
    out: List[str] = []
    for a in authors if isinstance(authors, list) else ([authors] if authors else []):
        if isinstance(a, str):
            name = a
        elif isinstance(a, dict):
            name = str(a.get("name") or "")
        else:
            name = str(a)
        if name:
            out.append(name)
    return out


def parse_summaries(
    result: Dict[str, Any],
    ids: List[str],
    scores: Optional[Dict[str, float]] = None,
) -> List[ArticleSummary]:
    """ESummary ``result`` block -> summaries in ``ids`` order; ids missing from the payload are skipped."""
    out: List[ArticleSummary] = []
    for uid in ids:
        doc = result.get(uid)
        if not isinstance(doc, dict):
            continue
        m = _YEAR.search(str(doc.get("pubdate") or ""))
        out.append(ArticleSummary(
            pmid=uid,
            title=str(doc.get("title") or ""),
            authors=_summary_authors(doc.get("authors")),
            journal=str(doc.get("fulljournalname") or doc.get("source") or ""),
            year=m.group(0) if m else "",
            doi=clean_doi(str(doc.get("elocationid") or "")),
            abstract_snippet=str(doc.get("sorttitle") or "")[:200],
            relevance_score=scores.get(uid, 0.0) if scores is not None else None,
        ))
    return out


def parse_links(payload: Dict[str, Any]) -> List[Tuple[str, Optional[float]]]:
    links: List[Tuple[str, Optional[float]]] = []
    for linkset in payload.get("linksets") or []:
        for db in linkset.get("linksetdbs") or []:
            for link in db.get("links") or []:
                if isinstance(link, dict):
                    score = link.get("score")
                    links.append((str(link.get("id")), float(score) if score is not None else None))
                else:
                    links.append((str(link), None))
    return links


def parse_pmc_link(payload: Dict[str, Any]) -> Optional[str]:
    for linkset in payload.get("linksets") or []:
        for db in linkset.get("linksetdbs") or []:
            links = db.get("links") or []
            if db.get("linkname") == "pubmed_pmc" and links:
                first = links[0]
                return f"PMC{first.get('id') if isinstance(first, dict) else first}"
    return None
