"""
pubcrawl: normalized records from PubMed, PMC, DailyMed SPL and eMC SmPC documents.

Submodules are imported directly, e.g.:
  from pubcrawl.parsers.pubmed import parse_pubmed_article
  from pubcrawl.services.labels import LabelService
"""
__version__ = "2.0.0"
