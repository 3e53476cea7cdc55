"""Unit tests for text and record normalization."""

import pytest

from note_discovery.core.errors import NormalizationError
from note_discovery.core.normalizer import ItemNormalizer, TextNormalizer, file_kind_for
from note_discovery.models.content import FileKind, Tier


class TestTextNormalizer:
    """Test cases for the TextNormalizer class."""

    @pytest.fixture
    def normalizer(self):
        return TextNormalizer()

    def test_lowercase_and_whitespace(self, normalizer):
        assert normalizer.normalize("  Linear   ALGEBRA ") == "linear algebra"

    def test_delimiters_become_spaces(self, normalizer):
        assert normalizer.normalize("data_structures-and/algorithms") == "data structures and algorithms"

    def test_accents_are_folded(self, normalizer):
        assert normalizer.normalize("Économie Générale") == "economie generale"

    def test_empty(self, normalizer):
        assert normalizer.normalize("") == ""
        assert normalizer.tokenize("") == []

    def test_tokenize(self, normalizer):
        assert normalizer.tokenize("Cell-Biology  notes") == ["cell", "biology", "notes"]


class TestFileKind:
    """Mapping of stored file types onto file kinds."""

    @pytest.mark.parametrize("file_type,expected", [
        ("pdf", FileKind.PDF),
        (".PDF", FileKind.PDF),
        ("docx", FileKind.DOCX),
        ("doc", FileKind.DOCX),
        ("pptx", FileKind.PPTX),
        ("jpg", FileKind.IMAGE),
        ("png", FileKind.IMAGE),
        ("image/webp", FileKind.IMAGE),
        ("application/pdf", FileKind.PDF),
        ("zip", FileKind.OTHER),
        ("", FileKind.OTHER),
        (None, FileKind.OTHER),
    ])
    def test_file_kind_for(self, file_type, expected):
        assert file_kind_for(file_type) == expected


class TestItemNormalizer:
    """Test cases for the ItemNormalizer class."""

    @pytest.fixture
    def normalizer(self):
        return ItemNormalizer()

    @pytest.fixture
    def note_record(self):
        """A free note as the portal's notes query returns it."""
        return {
            "id": "note-1",
            "title": "Calculus Notes",
            "description": "Limits and derivatives",
            "tags": ["calc", "limits"],
            "subject_id": "subj-math",
            "subjects": {"name": "Mathematics"},
            "profiles": {"first_name": "Amara", "last_name": "Okafor", "university": "University of Lagos"},
            "file_type": "pdf",
            "download_count": 12,
            "average_rating": 4.5,
        }

    @pytest.fixture
    def premium_record(self):
        return {
            "id": "premium-1",
            "title": "Calculus Exam Summary",
            "author": "Amara Okafor",
            "subject": {"id": "subj-math", "name": "Mathematics"},
            "university": "University of Lagos",
            "file_type": "pdf",
            "credit_price": 20,
            "page_count": 30,
        }

    def test_free_note(self, normalizer, note_record):
        report = normalizer.normalize([note_record], [])

        assert report.warning_count == 0
        item = report.items[0]
        assert item.tier == Tier.FREE
        assert item.credit_price is None
        assert item.subject.id == "subj-math"
        assert item.subject.name == "Mathematics"
        assert item.author == "Amara Okafor"
        assert item.university == "University of Lagos"
        assert item.file_kind == FileKind.PDF
        assert item.download_count == 12
        assert item.average_rating == 4.5

    def test_premium_summary(self, normalizer, premium_record):
        report = normalizer.normalize([], [premium_record])

        item = report.items[0]
        assert item.tier == Tier.PREMIUM
        assert item.credit_price == 20
        assert item.page_count == 30
        assert item.subject.name == "Mathematics"
        assert item.author == "Amara Okafor"

    def test_defaults(self, normalizer):
        report = normalizer.normalize([{"id": 7, "title": "Bare note", "tags": None}], [])

        item = report.items[0]
        assert item.id == "7"
        assert item.tags == []
        assert item.average_rating is None
        assert item.description == ""
        assert item.university is None
        assert item.subject is None
        assert item.file_kind == FileKind.OTHER
        assert item.download_count == 0

    def test_comma_separated_tags(self, normalizer):
        report = normalizer.normalize([{"id": "n", "title": "T", "tags": "calc, limits,,"}], [])
        assert report.items[0].tags == ["calc", "limits"]

    def test_free_items_come_first(self, normalizer, note_record, premium_record):
        second = dict(note_record, id="note-2")

        report = normalizer.normalize([note_record, second], [premium_record])

        assert [i.id for i in report.items] == ["note-1", "note-2", "premium-1"]

    @pytest.mark.parametrize("record", [
        {"title": "No id"},
        {"id": "", "title": "Blank id"},
        {"id": "x"},
        {"id": "x", "title": "   "},
        {"id": "x", "title": "Bad rating", "average_rating": 7},
        {"id": "x", "title": "Negative downloads", "download_count": -3},
        "not a mapping",
    ])
    def test_malformed_free_records_are_dropped(self, normalizer, note_record, record):
        report = normalizer.normalize([record, note_record], [])

        assert [i.id for i in report.items] == ["note-1"]
        assert report.warning_count == 1
        assert isinstance(report.warnings[0], NormalizationError)

    @pytest.mark.parametrize("price", [None, 0, -5, "abc", 2.5, True])
    def test_premium_price_required(self, normalizer, premium_record, price):
        record = dict(premium_record)
        if price is None:
            del record["credit_price"]
        else:
            record["credit_price"] = price

        report = normalizer.normalize([], [record])

        assert report.items == []
        assert report.warning_count == 1
        assert report.warnings[0].record_id == "premium-1"

    def test_price_alias(self, normalizer, premium_record):
        record = dict(premium_record)
        record["price"] = record.pop("credit_price")

        report = normalizer.normalize([], [record])

        assert report.items[0].credit_price == 20

    def test_duplicate_ids_are_dropped(self, normalizer, note_record):
        report = normalizer.normalize([note_record, dict(note_record, title="Copy")], [])

        assert len(report.items) == 1
        assert report.items[0].title == "Calculus Notes"
        assert report.warnings[0].reason == "duplicate id"

    def test_normalize_record_raises(self, normalizer):
        with pytest.raises(NormalizationError):
            normalizer.normalize_record({"id": "x"}, Tier.FREE)
