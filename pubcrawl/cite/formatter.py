"""
Citation strings for APA, Vancouver, Harvard and BibTeX.

Author-list truncation per style:
  apa        <=7 in full, otherwise first 6, "...", last author
  vancouver  <=6 in full, otherwise first 6 + "et al"
  harvard    <=3 in full, otherwise first author + "et al."
  bibtex     always every author, joined with "and"
Optional fields (volume, issue, pages, doi) are left out when empty.
"""
from __future__ import annotations
import re
from enum import Enum
from typing import Callable, Dict, List, Union

from pydantic import Field

from ..errors import UnsupportedStyleError
from ..schemas import Author, BibliographicRecord, Record

_KEY_CHARS = re.compile(r"\W+")


class CitationStyle(str, Enum):
    APA = "apa"
    VANCOUVER = "vancouver"
    HARVARD = "harvard"
    BIBTEX = "bibtex"


class CitationInfo(Record):
    pmid: str = ""
    authors: List[Author] = Field(default_factory=list)
    title: str = ""
    journal: str = ""
    year: str = ""
    volume: str = ""
    issue: str = ""
    pages: str = ""
    doi: str = ""

    @classmethod
    def from_record(cls, record: BibliographicRecord) -> "CitationInfo":
        return cls(
            pmid=record.pmid,
            authors=list(record.authors),
            title=record.title,
            journal=record.journal,
            year=record.year,
            volume=record.volume,
            issue=record.issue,
            pages=record.pages,
            doi=record.doi,
        )


def _initials(author: Author, sep: str, dot: str) -> str:
    return sep.join(f"{p[0]}{dot}" for p in author.given_parts)


def _name(author: Author, initials: str, between: str) -> str:
    if author.is_collective:
        return author.collective
    return f"{author.surname}{between}{initials}" if initials else author.surname


def _apa_author(a: Author) -> str:
    return _name(a, _initials(a, " ", "."), ", ")


def _vancouver_author(a: Author) -> str:
    return _name(a, _initials(a, "", ""), " ")


def _harvard_author(a: Author) -> str:
    return _name(a, _initials(a, "", "."), ", ")


def _title(title: str) -> str:
    return f" {title}" if title.endswith(".") else f" {title}."


def format_apa(info: CitationInfo) -> str:
    authors = info.authors
    if len(authors) <= 7:
        author_str = ", ".join(_apa_author(a) for a in authors)
    else:
        author_str = ", ".join(_apa_author(a) for a in authors[:6]) + ", ... " + _apa_author(authors[-1])

    out = author_str
    out += f" ({info.year})." if info.year else "."
    out += _title(info.title)
    out += f" *{info.journal}*"
    if info.volume:
        out += f", *{info.volume}*"
    if info.issue:
        out += f"({info.issue})"
    if info.pages:
        out += f", {info.pages}"
    out += "."
    if info.doi:
        out += f" https://doi.org/{info.doi}"
    return out.strip()


def format_vancouver(info: CitationInfo) -> str:
    authors = info.authors
    author_str = ", ".join(_vancouver_author(a) for a in authors[:6])
    if len(authors) > 6:
        author_str += ", et al"

    out = author_str + "."
    out += _title(info.title)
    out += f" {info.journal}."
    if info.year:
        out += f" {info.year}"
    if info.volume:
        out += f";{info.volume}"
    if info.issue:
        out += f"({info.issue})"
    if info.pages:
        out += f":{info.pages}"
    out += "."
    if info.doi:
        out += f" doi:{info.doi}"
    return out.strip()


def format_harvard(info: CitationInfo) -> str:
    authors = info.authors
    if len(authors) <= 3:
        author_str = ", ".join(_harvard_author(a) for a in authors)
    else:
        author_str = f"{_harvard_author(authors[0])} et al."

    out = author_str
    out += f" {info.year}." if info.year else "."
    out += f" '{info.title}'."
    out += f" *{info.journal}*"
    if info.volume:
        out += f", {info.volume}"
    if info.issue:
        out += f"({info.issue})"
    if info.pages:
        out += f", pp. {info.pages}"
    if info.doi:
        out += f". doi:{info.doi}"
    return out.strip()


def bibtex_key(info: CitationInfo) -> str:
    """First author's surname + year, else ``pmid<pmid>``."""
    if info.authors:
        first = info.authors[0]
        stem = _KEY_CHARS.sub("", (first.surname or first.collective).lower())
        if stem:
            return f"{stem}{info.year}"
    return f"pmid{info.pmid}"


def _bibtex_author(a: Author) -> str:
    if a.is_collective:
        return "{" + a.collective + "}"
    given = a.given or a.initials
    return f"{a.surname}, {given}" if given else a.surname


def format_bibtex(info: CitationInfo) -> str:
    lines = [
        f"@article{{{bibtex_key(info)},",
        f"  author  = {{{' and '.join(_bibtex_author(a) for a in info.authors)}}},",
        f"  title   = {{{info.title}}},",
        f"  journal = {{{info.journal}}},",
        f"  year    = {{{info.year}}},",
    ]
    if info.volume:
        lines.append(f"  volume  = {{{info.volume}}},")
    if info.issue:
        lines.append(f"  number  = {{{info.issue}}},")
    if info.pages:
        lines.append(f"  pages   = {{{info.pages}}},")
    if info.doi:
        lines.append(f"  doi     = {{{info.doi}}},")
    lines.append(f"  pmid    = {{{info.pmid}}},")
    lines.append("}")
    return "\n".join(lines)


FORMATTERS: Dict[CitationStyle, Callable[[CitationInfo], str]] = {
    CitationStyle.APA: format_apa,
    CitationStyle.VANCOUVER: format_vancouver,
    CitationStyle.HARVARD: format_harvard,
    CitationStyle.BIBTEX: format_bibtex,
}


def parse_style(style: Union[str, CitationStyle]) -> CitationStyle:
    try:
        return CitationStyle(str(getattr(style, "value", style)).lower().strip())
    except ValueError:
        supported = ", ".join(s.value for s in CitationStyle)
        raise UnsupportedStyleError(f"Unsupported citation style '{style}' (expected one of: {supported})") from None


def format_citation(info: Union[CitationInfo, BibliographicRecord], style: Union[str, CitationStyle] = "apa") -> str:
    if isinstance(info, BibliographicRecord):
        info = CitationInfo.from_record(info)
    return FORMATTERS[parse_style(style)](info)
