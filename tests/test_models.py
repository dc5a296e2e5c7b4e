"""Tests for models module (Layer 0)."""

import datetime

from poem_builder.constants import DEFAULT_AUTHOR
from poem_builder.models import (
    Analysis,
    Audio,
    Document,
    PostscriptNote,
    Segment,
    Version,
)


def test_segment_to_dict_omits_empty_label():
    """Unlabeled segment serializes only its lines."""
    assert Segment(lines="a\n").to_dict() == {"lines": "a\n"}
    assert Segment(lines="a\n", label="Verse").to_dict() == {"label": "Verse", "lines": "a\n"}


def test_version_from_dict():
    """Version rebuilds its segments."""
    version = Version.from_dict({"label": "Draft", "segments": [{"lines": "x\n"}]})
    assert version.label == "Draft"
    assert version.segments == [Segment(lines="x\n")]


def test_ref_note_excludes_label_and_content():
    """A $ref note serializes as a bare reference."""
    note = PostscriptNote(label="ignored", content="ignored", ref="shared.yaml#/a")
    assert note.to_dict() == {"$ref": "shared.yaml#/a"}


def test_ref_note_from_dict():
    """A mapping with $ref becomes a reference note."""
    note = PostscriptNote.from_dict({"$ref": "shared.yaml#/a"})
    assert note.ref == "shared.yaml#/a"
    assert note.content is None


def test_analysis_empty_parts_are_none():
    """Empty synopsis/full strings load as None."""
    analysis = Analysis.from_dict({"synopsis": "", "full": "<p>x</p>\n"})
    assert analysis.synopsis is None
    assert analysis.full == "<p>x</p>\n"


def test_document_key_order():
    """Storage keys come out in title, author, date, versions order."""
    doc = Document(title="T", date="2024-01-01", versions=[Version([Segment("a\n")])])
    assert list(doc.to_dict()) == ["title", "author", "date", "versions"]


def test_document_optional_sections_omitted_when_empty():
    """Empty audio, postscript and analysis are not serialized."""
    doc = Document(
        title="T", date="2024-01-01",
        versions=[Version([Segment("a\n")])],
        audio=Audio(), postscript=[], analysis=Analysis(),
    )
    data = doc.to_dict()
    assert "audio" not in data
    assert "postscript" not in data
    assert "analysis" not in data


def test_document_from_dict_normalizes_date():
    """YAML date objects come back as YYYY-MM-DD strings."""
    doc = Document.from_dict({"title": "T", "date": datetime.date(2024, 3, 5), "versions": []})
    assert doc.date == "2024-03-05"


def test_document_from_dict_default_author():
    """Missing author falls back to the default."""
    doc = Document.from_dict({"title": "T", "date": "2024-03-05"})
    assert doc.author == DEFAULT_AUTHOR


def test_document_from_dict_keeps_empty_author():
    """A stored empty author is not replaced by the default."""
    doc = Document.from_dict({"title": "T", "author": "", "date": "2024-03-05"})
    assert doc.author == ""


def test_document_slug():
    """Slug is derived from the title."""
    doc = Document(title="Fragments & Unity", date="2024-03-05")
    assert doc.slug == "fragments-unity"


def test_document_dict_round_trip():
    """to_dict then from_dict gives an equal Document."""
    doc = Document(
        title="T", date="2024-03-05", author="Someone",
        versions=[Version([Segment("a\n", label="One")], label="V")],
        audio=Audio({"audiomack": True, "suno": "song/x"}),
        postscript=[PostscriptNote(label="L", content="<p>c</p>\n"), PostscriptNote(ref="s.yaml#/a")],
        analysis=Analysis(synopsis="<p>s</p>\n"),
    )
    assert Document.from_dict(doc.to_dict()) == doc
