"""
Tests for legal citation extraction.
"""

import re
import time

from lexflow.services.legal.citations import CitationExtractor, CitationPattern, extract_citations


SAMPLE_ANALYSIS = """
## 2. Applicable Law
Claims arise under 42 U.S.C. § 1983 and the implementing rules at 29 C.F.R. § 1630.2.
The state analogue is California Civil Code § 1542 as well.

## 3. Precedent Review
The leading authority: Smith v. Jones, 410 U.S. 113 (1973).
Due process is grounded in U.S. Const. amend. XIV.
"""


def by_type(citations, kind):
    return [c for c in citations if c.type == kind]


class TestCaseLaw:

    def test_single_case_citation(self):
        citations = extract_citations("The court held in 1973: Smith v. Jones, 410 U.S. 113 (1973).")
        cases = by_type(citations, "case_law")
        assert len(cases) == 1
        assert cases[0].citation == "Smith v. Jones, 410 U.S. 113 (1973)"
        assert cases[0].components == ["Smith", "Jones", "410", "U.S.", "113", "1973"]

    def test_pin_cite_is_accepted(self):
        cases = by_type(extract_citations("Holding: Roe v. Wade, 410 U.S. 113, 153 (1973)"), "case_law")
        assert len(cases) == 1
        assert cases[0].components[-1] == "1973"

    def test_party_name_may_contain_punctuation(self):
        cases = by_type(
            extract_citations("as held in Acme Co., Inc. v. O'Brien & Sons, 12 Cal. 345 (1994)."), "case_law"
        )
        assert len(cases) == 1
        assert cases[0].components[:2] == ["Acme Co., Inc.", "O'Brien & Sons"]

    def test_long_prose_with_case_names_is_fast(self):
        paragraph = (
            "The court in Smith v. Jones held that the party, acting in good faith, "
            "may rely on the agreement. "
        )
        text = paragraph * 80
        assert len(text) > 7500

        started = time.perf_counter()
        citations = extract_citations(text)
        elapsed = time.perf_counter() - started

        assert by_type(citations, "case_law") == []
        assert elapsed < 1.0


class TestStatutesAndRegulations:

    def test_usc(self):
        usc = by_type(extract_citations(SAMPLE_ANALYSIS), "statute_usc")
        assert [c.citation for c in usc] == ["42 U.S.C. § 1983"]
        assert usc[0].components == ["42", "1983"]

    def test_cfr(self):
        cfr = by_type(extract_citations(SAMPLE_ANALYSIS), "regulation_cfr")
        assert len(cfr) == 1
        assert cfr[0].components[0] == "29"
        assert cfr[0].components[1].startswith("1630.2")

    def test_state_code(self):
        state = by_type(extract_citations(SAMPLE_ANALYSIS), "statute_state")
        assert len(state) == 1
        assert state[0].citation.endswith("Code § 1542")
        assert state[0].components[-1] == "1542"

    def test_constitution_drops_missing_groups(self):
        const = by_type(extract_citations(SAMPLE_ANALYSIS), "constitution")
        assert len(const) == 1
        assert const[0].components[-1] == "XIV"
        assert None not in const[0].components


class TestExtractor:

    def test_empty_text(self):
        assert extract_citations("") == []

    def test_plain_text_has_no_citations(self):
        assert extract_citations("Please call the client back tomorrow.") == []

    def test_families_in_registration_order(self):
        extractor = CitationExtractor()
        assert extractor.families == [
            "case_law", "statute_usc", "statute_state", "regulation_cfr", "constitution",
        ]
        kinds = [c.type for c in extractor.extract(SAMPLE_ANALYSIS)]
        assert kinds.index("statute_usc") < kinds.index("constitution")

    def test_register_new_family(self):
        extractor = CitationExtractor(patterns=[])
        extractor.register(CitationPattern("public_law", re.compile(r"Pub\.\s+L\.\s+No\.\s+(\d+)-(\d+)")))
        citations = extractor.extract("Enacted as Pub. L. No. 111-148.")
        assert len(citations) == 1
        assert citations[0].type == "public_law"
        assert citations[0].components == ["111", "148"]

    def test_duplicates_are_kept(self):
        text = "See 42 U.S.C. § 1983. Again, 42 U.S.C. § 1983."
        assert len(by_type(extract_citations(text), "statute_usc")) == 2
