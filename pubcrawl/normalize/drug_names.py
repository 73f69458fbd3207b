"""
Drug display name -> canonical matching key.

    "METFORMIN HYDROCHLORIDE tablet - TEVA PHARMACEUTICALS USA" -> "metformin"
    "ATORVASTATIN CALCIUM tablets"                               -> "atorvastatin"

Different salts of one molecule collapse to the same key; callers merging on
the key accept that.
"""
from __future__ import annotations
import re
from typing import Iterable, List, Pattern

# " - Manufacturer", " – Manufacturer", "[Manufacturer]"
MANUFACTURER_SEPARATOR = re.compile(r"\s+[-–—]\s+|\s*\[")

DOSAGE_FORMS = (
    "tablet", "tablets", "film-coated", "film coated", "coated",
    "capsule", "capsules", "caplet", "caplets",
    "injection", "injections", "injectable", "infusion",
    "solution", "solutions", "suspension", "suspensions",
    "syrup", "elixir", "emulsion", "concentrate",
    "cream", "creams", "ointment", "ointments", "gel", "gels", "lotion",
    "patch", "patches", "transdermal", "powder", "powders", "granules",
    "spray", "sprays", "inhaler", "inhalation", "aerosol",
    "drops", "suppository", "suppositories", "lozenge", "lozenges",
    "extended-release", "extended release", "delayed-release", "delayed release",
    "modified-release", "prolonged-release", "gastro-resistant",
    "chewable", "dispersible", "effervescent", "orodispersible",
    "oral", "topical", "intravenous", "subcutaneous",
)

SALT_FORMS = (
    "hydrochloride", "hcl", "dihydrochloride", "hydrobromide",
    "sodium", "potassium", "calcium", "magnesium",
    "maleate", "mesylate", "besylate", "tartrate", "bitartrate",
    "succinate", "fumarate", "citrate", "sulfate", "sulphate",
    "phosphate", "acetate", "bromide", "chloride", "hyclate",
    "monohydrate", "dihydrate", "trihydrate", "anhydrous",
)

_PUNCT = re.compile(r"[^\w\s]+")
_SPACES = re.compile(r"\s+")


def _word_pattern(words: Iterable[str]) -> Pattern[str]:
    # longest first so "film-coated" is removed before "coated"
    alternation = "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))
    return re.compile(rf"(?<![\w-])(?:{alternation})(?![\w-])", re.IGNORECASE)


_DOSAGE = _word_pattern(DOSAGE_FORMS)
_SALTS = _word_pattern(SALT_FORMS)


def _collapse(text: str) -> str:
    return _SPACES.sub(" ", _PUNCT.sub(" ", text)).strip().lower()


def strip_manufacturer(name: str) -> str:
    return MANUFACTURER_SEPARATOR.split(name, maxsplit=1)[0]


def normalize_drug_name(name: str) -> str:
    """
    Canonical key for ``name``: manufacturer suffix cut, dosage-form and salt
    words removed (whole words only), punctuation and whitespace collapsed,
    lowercased. A name made only of stripped words keeps its collapsed form.
    """
    base = strip_manufacturer(name or "")
    stripped = _SALTS.sub(" ", _DOSAGE.sub(" ", base))
    return _collapse(stripped) or _collapse(base)


def unique_names(names: Iterable[str]) -> List[str]:
    """Canonical keys in first-seen order, empty keys dropped."""
    seen = set()
    out: List[str] = []
    for n in names:
        key = normalize_drug_name(n)
        if key and key not in seen:
            seen.add(key)
            out.append(key)
    return out
