"""
Legal Citation Extraction
Finds case law, statute, regulation and constitutional citations in free text.

Each citation family is an independent named pattern; CitationExtractor runs
all of them and concatenates the matches in registration order. Matches are
not deduplicated across families.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern

from .models import LegalCitation


@dataclass(frozen=True)
class CitationPattern:
    """One citation family."""
    name: str
    regex: Pattern[str]

    def extract(self, text: str) -> List[LegalCitation]:
        citations = []
        for match in self.regex.finditer(text):
            components = [group.strip() for group in match.groups() if group is not None]
            citations.append(
                LegalCitation(type=self.name, citation=match.group(0).strip(), components=components)
            )
        return citations


# Smith v. Jones, 410 U.S. 113 (1973) / Roe v. Wade, 410 U.S. 113, 153 (1973)
CASE_LAW = CitationPattern(
    "case_law",
    re.compile(
        # Party names are bounded so prose full of "X v. Y" stays linear
        r"\b([A-Z][A-Za-z.,'&\- ]{0,80}?)\s+v\.\s+([A-Z][A-Za-z.,'&\- ]{0,80}?),\s+(\d+)\s+([A-Za-z.]{1,5})"
        r"\s+(\d+)(?:,\s+\d+)?\s+\((\d{4})\)"
    ),
)

# 42 U.S.C. § 1983 / 15 USC § 78j(b)
STATUTE_USC = CitationPattern(
    "statute_usc",
    re.compile(r"(\d+)\s+U\.?S\.?C\.?\s+§\s*([\d\-]+(?:[\(a-z\)]+)?)"),
)

# Texas Penal Code § 22.01 / Florida Stat. § 768.28
STATUTE_STATE = CitationPattern(
    "statute_state",
    re.compile(r"([A-Za-z\s]+)\s+(?:Stat\.?|Code|Laws)\s+§\s*([\d.\-a-z]+)"),
)

# 29 C.F.R. § 1630.2
REGULATION_CFR = CitationPattern(
    "regulation_cfr",
    re.compile(r"(\d+)\s+C\.?F\.?R\.?\s+§?\s*([\d.\-]+)"),
)

# U.S. Const. amend. XIV / Ohio Const. art. I, § 7
CONSTITUTION = CitationPattern(
    "constitution",
    re.compile(
        r"(U\.?S\.?|[\w\s]+)\s+Const\.\s+(?:art\.\s*([IVXLCDM]+)|amend\.\s*([IVXLCDM]+))"
        r"(?:\s*,\s*§\s*(\d+))?"
    ),
)

DEFAULT_PATTERNS = (CASE_LAW, STATUTE_USC, STATUTE_STATE, REGULATION_CFR, CONSTITUTION)


class CitationExtractor:
    """Runs every registered citation family over a text."""

    def __init__(self, patterns: Optional[List[CitationPattern]] = None):
        self.patterns: List[CitationPattern] = list(DEFAULT_PATTERNS if patterns is None else patterns)

    def register(self, pattern: CitationPattern) -> None:
        self.patterns.append(pattern)

    @property
    def families(self) -> List[str]:
        return [p.name for p in self.patterns]

    def extract(self, text: str) -> List[LegalCitation]:
        if not text:
            return []
        citations: List[LegalCitation] = []
        for pattern in self.patterns:
            citations.extend(pattern.extract(text))
        return citations


def extract_citations(text: str) -> List[LegalCitation]:
    """Extract citations with the default families."""
    return CitationExtractor().extract(text)
