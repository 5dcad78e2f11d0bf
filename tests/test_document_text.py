"""
Document type classification tests.

Run with: pytest tests/test_document_text.py -v
"""
import pytest

from pipeline.document_text import (
    classify_document_type,
    compute_keywords,
    detect_mrz,
    normalize_text,
)

MRZ_LINES = (
    "P<CODDOE<<JOHN<<<<<<<<<<<<<<<<<<<<<<<<<<<<<<\n"
    "OP12345674COD8001014M3001012<<<<<<<<<<<<<<02"
)


class TestNormalizeText:

    def test_accents_and_apostrophes(self):
        assert normalize_text("République   Démocratique\nd'Électeur") == \
            "republique democratique delecteur"

    def test_typographic_apostrophe(self):
        assert normalize_text("Carte d’Électeur") == "carte delecteur"


class TestClassifyDocumentType:

    @pytest.mark.parametrize("text,doc_type", [
        ("REPUBLIQUE DEMOCRATIQUE DU CONGO PASSEPORT", "passport"),
        ("Commission Électorale Nationale Indépendante", "voter_card"),
        ("PERMIS DE CONDUIRE", "driver_license"),
        ("Police Nationale Congolaise MATRICULE 4411", "police_card"),
        ("lorem ipsum dolor", "unknown"),
    ])
    def test_keyword_families(self, text, doc_type):
        assert classify_document_type(normalize_text(text)) == doc_type

    def test_passport_has_priority(self):
        text = normalize_text("PASSEPORT - PERMIS DE CONDUIRE")
        assert classify_document_type(text) == "passport"

    def test_category_letter_implies_licence(self):
        assert classify_document_type(normalize_text("CAT B1 JEAN MUKENDI")) == "driver_license"

    def test_date_pair_implies_licence(self):
        text = normalize_text("JEAN MUKENDI 01.02.2020 01.02.2030")
        assert classify_document_type(text) == "driver_license"


class TestMrz:

    def test_two_line_mrz(self):
        assert detect_mrz("PASSPORT\n" + MRZ_LINES + "\n")

    def test_spaces_inside_lines_are_ignored(self):
        spaced = MRZ_LINES.replace("<<<<", "<< <<", 1)
        assert detect_mrz(spaced)

    def test_single_line_is_not_enough(self):
        assert not detect_mrz(MRZ_LINES.splitlines()[0])

    def test_short_lines(self):
        assert not detect_mrz("P<COD<<<\nOP123<<<")


def test_compute_keywords():
    text = normalize_text("NOM: MUKENDI Prénom: JEAN Province: KINSHASA")
    assert compute_keywords(text) == ["nom", "prenom", "province"]
