# tests/conftest.py
"""
Pytest fixtures for pubcrawl tests.

Provides:
- Inline sample documents (PubMed XML, PMC JATS XML, DailyMed SPL XML,
  eMC SmPC / search HTML, openFDA and E-utilities JSON)
- Source objects wired to an ``httpx.MockTransport`` router and a no-op
  limiter, so nothing touches the network

Usage:
    def test_abstract(pubmed_xml):
        record = parse_pubmed_article(pubmed_xml())
        assert record.doi == "10.1000/xyz"
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from pubcrawl.utils.cache import TTLCache
from pubcrawl.utils.config import SourceSettings
from pubcrawl.utils.rate_limit import NullLimiter


# =============================================================================
# PUBMED / PMC DOCUMENTS
# =============================================================================

def _author_xml(i: int) -> str:
    return f"<Author><LastName>Author{i}</LastName><ForeName>Alex B</ForeName><Initials>AB</Initials></Author>"


def build_pubmed_xml(
    pmid: str = "12345678",
    authors: Optional[List[str]] = None,
    doi: str = "10.1000/xyz",
    year: str = "<Year>2021</Year>",
) -> str:
    if authors is None:
        authors = [
            "<Author><LastName>Smith</LastName><ForeName>John Andrew</ForeName><Initials>JA</Initials></Author>",
            "<Author><LastName>Doe</LastName><Initials>J</Initials></Author>",
            "<Author><CollectiveName>Trial Study Group</CollectiveName></Author>",
        ]
    author_xml = "".join(authors)
    doi_el = f'<ELocationID EIdType="doi" ValidYN="Y">{doi}</ELocationID>' if doi else ""
    return f"""<?xml version="1.0"?>
<PubmedArticleSet>
  <PubmedArticle>
    <MedlineCitation Status="MEDLINE">
      <PMID Version="1">{pmid}</PMID>
      <Article PubModel="Print">
        <Journal>
          <JournalIssue CitedMedium="Internet">
            <Volume>12</Volume>
            <Issue>3</Issue>
            <PubDate>{year}</PubDate>
          </JournalIssue>
          <Title>Journal of Testing</Title>
          <ISOAbbreviation>J Test</ISOAbbreviation>
        </Journal>
        <ArticleTitle>Effect of <i>metformin</i> on H<sub>2</sub>O balance</ArticleTitle>
        <Pagination><MedlinePgn>100-110</MedlinePgn></Pagination>
        <ELocationID EIdType="pii" ValidYN="Y">S0001</ELocationID>
        {doi_el}
        <Abstract>
          <AbstractText Label="BACKGROUND">Background text.</AbstractText>
          <AbstractText Label="RESULTS">Results text.</AbstractText>
        </Abstract>
        <AuthorList CompleteYN="Y">
          {author_xml}
        </AuthorList>
      </Article>
      <MeshHeadingList>
        <MeshHeading><DescriptorName UI="D006801">Humans</DescriptorName></MeshHeading>
        <MeshHeading><DescriptorName UI="D008687">Metformin</DescriptorName><QualifierName UI="Q1">therapeutic use</QualifierName></MeshHeading>
        <MeshHeading><DescriptorName UI="D006801">Humans</DescriptorName></MeshHeading>
      </MeshHeadingList>
      <KeywordList Owner="NOTNLM">
        <Keyword>diabetes</Keyword>
        <Keyword>biguanide</Keyword>
      </KeywordList>
    </MedlineCitation>
    <PubmedData>
      <ArticleIdList>
        <ArticleId IdType="pubmed">{pmid}</ArticleId>
        <ArticleId IdType="pmc">PMC7654321</ArticleId>
      </ArticleIdList>
    </PubmedData>
  </PubmedArticle>
</PubmedArticleSet>"""


@pytest.fixture
def pubmed_xml() -> Callable[..., str]:
    """Factory for PubMed efetch XML; see ``build_pubmed_xml`` for knobs."""
    return build_pubmed_xml


@pytest.fixture
def many_authors() -> Callable[[int], List[str]]:
    """``n`` distinct <Author> elements (Author1 .. Author<n>)."""
    return lambda n: [_author_xml(i) for i in range(1, n + 1)]


JATS_XML = """<?xml version="1.0"?>
<pmc-articleset>
  <article article-type="research-article">
    <front>
      <article-meta>
        <article-id pub-id-type="pmid">12345678</article-id>
        <article-id pub-id-type="pmc">7654321</article-id>
        <title-group><article-title>Metformin in practice</article-title></title-group>
      </article-meta>
    </front>
    <body>
      <p>Loose opening paragraph.</p>
      <sec id="s1">
        <title>Introduction</title>
        <p>Intro one.</p>
        <p>Intro two.</p>
      </sec>
      <sec id="s2">
        <title>Methods</title>
        <p>Methods text.</p>
        <sec id="s2a">
          <title>Participants</title>
          <p>Adults aged 18 to 65.</p>
        </sec>
        <fig id="f1"><label>Figure 1</label><caption><p>Study flow.</p></caption></fig>
      </sec>
      <sec id="s3">
        <title>Results</title>
        <p>Results text.</p>
        <table-wrap id="t1"><label>Table 1</label><caption><p>Baseline characteristics.</p></caption></table-wrap>
        <table-wrap id="t2"><caption><p>Unlabelled table.</p></caption></table-wrap>
      </sec>
    </body>
    <back>
      <ref-list>
        <ref id="r1"><mixed-citation>One.</mixed-citation></ref>
        <ref id="r2"><mixed-citation>Two.</mixed-citation></ref>
        <ref id="r3"><mixed-citation>Three.</mixed-citation></ref>
      </ref-list>
    </back>
  </article>
</pmc-articleset>"""


@pytest.fixture
def jats_xml() -> str:
    return JATS_XML


# =============================================================================
# LABEL DOCUMENTS
# =============================================================================

SPL_XML = """<?xml version="1.0" encoding="UTF-8"?>
<document xmlns="urn:hl7-org:v3">
  <setId root="abc-123"/>
  <title>METFORMIN HYDROCHLORIDE tablet</title>
  <component>
    <structuredBody>
      <component>
        <section>
          <code code="34067-9" codeSystem="2.16.840.1.113883.6.1"/>
          <title>1 INDICATIONS AND USAGE</title>
          <text>
            <paragraph>Metformin is indicated as an <content styleCode="bold">adjunct</content> to diet.</paragraph>
          </text>
        </section>
      </component>
      <component>
        <section>
          <code code="34068-7" codeSystem="2.16.840.1.113883.6.1"/>
          <title>2 DOSAGE AND ADMINISTRATION</title>
          <text>
            <paragraph>Start at 500 mg.</paragraph>
            <list><item>Take with meals.</item><item>Titrate weekly.</item></list>
          </text>
          <component>
            <section>
              <code code="42229-5" codeSystem="2.16.840.1.113883.6.1"/>
              <title>2.1 Recommended Dosing</title>
              <text><paragraph>Maximum 2550 mg daily.</paragraph></text>
            </section>
          </component>
        </section>
      </component>
      <component>
        <section>
          <code code="34084-4" codeSystem="2.16.840.1.113883.6.1"/>
          <title>6 ADVERSE REACTIONS</title>
          <text>
            <table>
              <tbody>
                <tr><td>Diarrhea</td><td>53%</td></tr>
                <tr><td>Nausea</td><td>26%</td></tr>
              </tbody>
            </table>
          </text>
        </section>
      </component>
    </structuredBody>
  </component>
</document>"""


@pytest.fixture
def spl_xml() -> str:
    return SPL_XML


SMPC_STRUCTURED_HTML = """<html><body>
<h1>Metformin 500mg film-coated tablets</h1>
<div class="sectionWrapper">
  <h2 id="SECTION4">4. Clinical particulars</h2>
  <h3 id="SECTION4.1">4.1 Therapeutic indications</h3>
  <p>Treatment of type 2 diabetes mellitus.</p>
  <ul><li>in adults</li><li>in children from 10 years</li></ul>
  <h3 id="SECTION4.2">4.2 Posology and method of administration</h3>
  <p>Usual starting dose is 500 mg.</p>
  <p>Take with<br>meals.</p>
  <h3 id="SECTION4.3">4.3 Contraindications</h3>
  <p>Hypersensitivity to the active substance.</p>
  <h3 id="SECTION4.8">4.8 Undesirable effects</h3>
  <p>Gastrointestinal disorders are very common.</p>
</div>
</body></html>"""

SMPC_EXHAUSTIVE_HTML = """<html><body>
<div class="content">
  <div><span>4.1 Therapeutic indications</span><p>Treatment of hypertension.</p></div>
  <div><span>4.3 Contraindications</span><p>Pregnancy.</p></div>
  <p>Store below 25 degrees. 12 tablets per pack.</p>
  <div><span>99.9 Not a real section</span></div>
</div>
</body></html>"""

EMC_SEARCH_HTML = """<html><body>
<ul class="search-results">
  <li>
    <a href="/emc/product/1234/smpc">Metformin 500mg film-coated tablets</a>
    <span class="company">Accord Healthcare Ltd</span>
    <a href="/emc/product/1234/smpc">Health Professionals (SmPC)</a>
  </li>
  <li>
    <a href="/emc/product/5678/smpc">Glucophage 500 mg tablets</a>
    <span class="manufacturer">Merck Serono Ltd</span>
  </li>
  <li><a href="/emc/product/1234/smpc">Metformin 500mg film-coated tablets</a></li>
  <li><a href="/emc/product/9999/pil">Patient leaflet</a></li>
</ul>
</body></html>"""


@pytest.fixture
def smpc_html() -> str:
    return SMPC_STRUCTURED_HTML


@pytest.fixture
def smpc_exhaustive_html() -> str:
    return SMPC_EXHAUSTIVE_HTML


@pytest.fixture
def emc_search_html() -> str:
    return EMC_SEARCH_HTML


# =============================================================================
# JSON PAYLOADS
# =============================================================================

@pytest.fixture
def esummary_result() -> Dict[str, Any]:
    """ESummary ``result`` block for two PMIDs."""
    return {
        "uids": ["111", "222"],
        "111": {
            "uid": "111",
            "title": "First article",
            "authors": [{"name": "Smith J", "authtype": "Author"}, {"name": "Doe A"}],
            "fulljournalname": "Journal of Testing",
            "source": "J Test",
            "pubdate": "2020 Mar 5",
            "elocationid": "DOI: 10.1000/first",
            "sorttitle": "first article " * 30,
        },
        "222": {
            "uid": "222",
            "title": "Second article",
            "authors": ["Brown K"],
            "source": "Other J",
            "pubdate": "2019",
            "elocationid": "",
            "sorttitle": "second article",
        },
    }


OPENFDA_PAYLOAD = {
    "results": [
        {"openfda": {
            "generic_name": ["METFORMIN HYDROCHLORIDE"],
            "brand_name": ["Glucophage"],
            "manufacturer_name": ["Bristol-Myers Squibb"],
            "spl_set_id": ["set-metformin"],
        }},
        {"openfda": {
            "generic_name": ["Metformin Hydrochloride Extended-Release"],
            "brand_name": ["Glumetza"],
            "manufacturer_name": ["Santarus"],
            "spl_set_id": ["set-metformin-er"],
        }},
        {"openfda": {
            "generic_name": ["SITAGLIPTIN"],
            "brand_name": ["Januvia"],
            "manufacturer_name": ["Merck Sharp & Dohme"],
            "spl_set_id": ["set-sitagliptin"],
        }},
        {"openfda": {}},
    ]
}


@pytest.fixture
def openfda_payload() -> Dict[str, Any]:
    return OPENFDA_PAYLOAD


CT_STUDY: Dict[str, Any] = {
    "protocolSection": {
        "identificationModule": {
            "nctId": "NCT01234567",
            "briefTitle": "Metformin in Early Type 2 Diabetes",
            "officialTitle": "A Randomized Trial of Metformin in Early Type 2 Diabetes",
        },
        "statusModule": {
            "overallStatus": "RECRUITING",
            "startDateStruct": {"date": "2023-01"},
            "completionDateStruct": {"date": "2026-06-30"},
        },
        "sponsorCollaboratorsModule": {"leadSponsor": {"name": "Example University"}},
        "descriptionModule": {"briefSummary": "Tests metformin against placebo."},
        "conditionsModule": {"conditions": ["Type 2 Diabetes"]},
        "designModule": {
            "studyType": "INTERVENTIONAL",
            "phases": ["PHASE2", "PHASE3"],
            "designInfo": {
                "allocation": "RANDOMIZED",
                "interventionModel": "PARALLEL",
                "primaryPurpose": "TREATMENT",
                "maskingInfo": {"masking": "DOUBLE", "whoMasked": ["PARTICIPANT", "INVESTIGATOR"]},
            },
            "enrollmentInfo": {"count": 240, "type": "ESTIMATED"},
        },
        "armsInterventionsModule": {
            "armGroups": [
                {"label": "Metformin", "type": "EXPERIMENTAL", "description": "500 mg twice daily",
                 "interventionNames": ["Drug: Metformin"]},
                {"label": "Placebo", "type": "PLACEBO_COMPARATOR", "interventionNames": ["Drug: Placebo"]},
            ],
            "interventions": [
                {"type": "DRUG", "name": "Metformin"},
                {"type": "DRUG", "name": "Placebo"},
            ],
        },
        "outcomesModule": {
            "primaryOutcomes": [{"measure": "HbA1c change", "description": "From baseline", "timeFrame": "24 weeks"}],
            "secondaryOutcomes": [{"measure": "Body weight", "timeFrame": "24 weeks"}],
        },
        "eligibilityModule": {
            "eligibilityCriteria": "Inclusion Criteria:\n* Adults with T2D",
            "healthyVolunteers": False,
            "sex": "ALL",
            "minimumAge": "18 Years",
            "maximumAge": "75 Years",
        },
        "contactsLocationsModule": {
            "overallOfficials": [{"name": "Jane Roe, MD", "role": "PRINCIPAL_INVESTIGATOR"}],
            "locations": [{"city": "Boston"}, {"city": "Leeds"}, {"city": "Lyon"}],
        },
        "referencesModule": {"references": [{"pmid": "11111111"}, {"citation": "no pmid"}, {"pmid": "22222222"}]},
    },
}


@pytest.fixture
def ct_study() -> Dict[str, Any]:
    """One full ClinicalTrials.gov v2 study record."""
    return CT_STUDY


@pytest.fixture
def ct_search_payload() -> Dict[str, Any]:
    return {"studies": [CT_STUDY, {"protocolSection": {"identificationModule": {"nctId": "NCT07654321"}}}],
            "totalCount": 57}


# =============================================================================
# MOCK TRANSPORT / SOURCES
# =============================================================================

Route = Callable[[httpx.Request], httpx.Response]


class Router:
    """Path-prefix -> handler table for ``httpx.MockTransport``; records every request."""

    def __init__(self) -> None:
        self.routes: List[Tuple[str, Route]] = []
        self.requests: List[httpx.Request] = []

    def add(self, path: str, handler: Route) -> "Router":
        self.routes.append((path, handler))
        return self

    def add_json(self, path: str, payload: Any, status: int = 200) -> "Router":
        return self.add(path, lambda request: httpx.Response(status, json=payload))

    def add_text(self, path: str, text: str, status: int = 200) -> "Router":
        return self.add(path, lambda request: httpx.Response(status, text=text))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for path, handler in self.routes:
            if request.url.path.startswith(path):
                return handler(request)
        return httpx.Response(404, text="not found")

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path.startswith(path))


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
def make_source(router: Router):
    """Build any BaseSource subclass against the mock router; no throttling, no retries unless asked."""
    def factory(cls, base_url: str = "https://test.local", **settings: Any):
        source_settings = SourceSettings(**{"base_url": base_url, "max_retries": 1, **settings})
        client = httpx.AsyncClient(transport=httpx.MockTransport(router))
        return cls(source_settings, cache=TTLCache(100), limiter=NullLimiter(), client=client)
    return factory
