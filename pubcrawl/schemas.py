from __future__ import annotations
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class Section(Record):
    code: str = ""
    title: str = ""
    content: str = ""


class Author(Record):
    surname: str = ""
    given: str = ""
    initials: str = ""
    collective: str = ""

    @property
    def is_collective(self) -> bool:
        return bool(self.collective) and not self.surname

    @property
    def given_parts(self) -> List[str]:
        """Given names when known, otherwise the initials split letter by letter."""
        if self.given:
            return self.given.replace("-", " ").split()
        return [c for c in self.initials if c.isalpha()]

    @property
    def display(self) -> str:
        if self.is_collective:
            return self.collective
        return " ".join(x for x in (self.surname, self.given or self.initials) if x)


class BibliographicRecord(Record):
    pmid: str
    title: str = ""
    authors: List[Author] = Field(default_factory=list)
    journal: str = ""
    year: str = ""
    volume: str = ""
    issue: str = ""
    pages: str = ""
    doi: str = ""
    abstract: List[Section] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    mesh_terms: List[str] = Field(default_factory=list)
    pmc_id: Optional[str] = None


class FullTextSection(Record):
    title: str = ""
    content: str = ""


class FullTextRecord(Record):
    pmid: str = ""
    pmcid: str = ""
    title: str = ""
    sections: List[FullTextSection] = Field(default_factory=list)
    figure_captions: List[str] = Field(default_factory=list)
    table_captions: List[str] = Field(default_factory=list)
    reference_count: int = 0


class LabelRecord(Record):
    jurisdiction: Literal["us", "uk"]
    drug_name: str
    identifier: str
    sections: List[Section] = Field(default_factory=list)
    url: str = ""
    spl_version: Optional[str] = None
    published_date: Optional[str] = None

    @field_validator("sections")
    @classmethod
    def _one_per_code(cls, sections: List[Section]) -> List[Section]:
        # later sections replace earlier ones with the same code
        by_code: Dict[str, Section] = {}
        for s in sections:
            by_code[s.code] = s
        return list(by_code.values())

    def by_code(self) -> Dict[str, Section]:
        return {s.code: s for s in self.sections}


class CrosswalkRow(Record):
    topic: str
    us_code: str
    uk_code: str


class TopicComparison(Record):
    topic: str
    us_section: Optional[Section] = None
    uk_section: Optional[Section] = None


class ComparisonRecord(Record):
    drug: str
    comparisons: List[TopicComparison] = Field(default_factory=list)
    us_source: Optional[str] = None
    uk_source: Optional[str] = None
    errors: Dict[str, str] = Field(default_factory=dict)


class DrugApprovalEntry(Record):
    name: str
    brand_name: str = ""
    manufacturer: str = ""
    us_approved: bool = False
    uk_approved: bool = False
    us_setid: Optional[str] = None
    uk_product_id: Optional[str] = None


class IndicationSearchResult(Record):
    condition: str
    drugs: List[DrugApprovalEntry] = Field(default_factory=list)


class ArticleSummary(Record):
    pmid: str
    title: str = ""
    authors: List[str] = Field(default_factory=list)
    journal: str = ""
    year: str = ""
    doi: str = ""
    abstract_snippet: str = ""
    relevance_score: Optional[float] = None


class SearchResult(Record):
    results: List[ArticleSummary] = Field(default_factory=list)
    total_count: int = 0


class DailyMedHit(Record):
    setid: str
    title: str = ""
    published_date: str = ""
    spl_version: str = ""


class EmcProduct(Record):
    product_id: str
    name: str = ""
    company: str = ""


class OpenFdaDrug(Record):
    generic_name: str
    brand_name: str = ""
    manufacturer: str = ""
    set_id: str = ""


class TrendingResult(SearchResult):
    topic: str = ""
    period_days: int = 30


class TrialIntervention(Record):
    type: str = ""
    name: str = ""


class TrialSummary(Record):
    nct_id: str = ""
    title: str = ""
    status: str = ""
    phase: str = ""
    conditions: List[str] = Field(default_factory=list)
    interventions: List[TrialIntervention] = Field(default_factory=list)
    enrollment: Optional[int] = None
    sponsor: str = ""
    start_date: str = ""
    completion_date: str = ""
    study_type: str = ""
    url: str = ""


class TrialSearchResult(Record):
    results: List[TrialSummary] = Field(default_factory=list)
    total_count: int = 0


class TrialEligibility(Record):
    criteria: str = ""
    gender: str = ""
    minimum_age: str = ""
    maximum_age: str = ""
    healthy_volunteers: str = ""


class TrialDesign(Record):
    allocation: str = ""
    intervention_model: str = ""
    primary_purpose: str = ""
    masking: str = ""
    who_masked: List[str] = Field(default_factory=list)


class TrialArm(Record):
    label: str = ""
    type: str = ""
    description: str = ""
    intervention_names: List[str] = Field(default_factory=list)


class TrialOutcome(Record):
    measure: str = ""
    description: str = ""
    time_frame: str = ""


class TrialDetail(TrialSummary):
    official_title: str = ""
    summary: str = ""
    eligibility: TrialEligibility = Field(default_factory=TrialEligibility)
    design: TrialDesign = Field(default_factory=TrialDesign)
    arms: List[TrialArm] = Field(default_factory=list)
    primary_outcomes: List[TrialOutcome] = Field(default_factory=list)
    secondary_outcomes: List[TrialOutcome] = Field(default_factory=list)
    locations_count: int = 0
    lead_investigator: str = ""
    associated_pmids: List[str] = Field(default_factory=list)
