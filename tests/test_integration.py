"""Integration tests (Layer 4): source to YAML to site, and back to source."""

import os
from unittest.mock import patch

from poem_builder.artifacts import convert_poem_file, load_document
from poem_builder.cli import main
from poem_builder.parser import parse_poem


def _run(*argv):
    with patch("sys.argv", ["poem-builder", *argv]):
        main()


def test_full_site_build(tmp_path, sample_poem_file, shared_yaml, capsys):
    """Convert every source, build the site, and resolve shared notes."""
    public = tmp_path / "public"
    _run("to-yaml", "--all", "--dir", str(tmp_path))
    _run("build", "--poems-dir", str(tmp_path), "--public-dir", str(public))

    page = (public / "harbour-song.html").read_text(encoding="utf-8")
    assert "Any resemblance to real harbours is coincidental." in page
    assert "Row, row, row<br>\nToward the harbour" in page
    assert "Tuesday, 5 March 2024" in page

    index = (public / "index.html").read_text(encoding="utf-8")
    assert 'href="harbour-song.html"' in index

    out = capsys.readouterr().out
    assert "Built 1, skipped 1, errors 0" in out


def test_yaml_keeps_unresolved_refs(tmp_path, sample_poem_file, shared_yaml):
    """Stored YAML keeps $ref notes; only rendering resolves them."""
    _run("to-yaml", str(sample_poem_file))
    doc = load_document(str(tmp_path / "harbour_song.yaml"))
    assert doc.postscript[1].ref == "shared.yaml#/disclaimer"


def test_poem_yaml_poem_round_trip(tmp_path, sample_poem_file):
    """.poem → YAML → .poem parses to the same document."""
    original = convert_poem_file(str(sample_poem_file))
    _run("to-yaml", str(sample_poem_file))
    rebuilt = tmp_path / "rebuilt.poem"
    _run("to-poem", str(tmp_path / "harbour_song.yaml"), str(rebuilt))

    assert parse_poem(rebuilt.read_text(encoding="utf-8")) == original


def test_shared_include_applies_to_batch(tmp_path, capsys):
    """.shared.poem variables reach every poem in the directory."""
    (tmp_path / ".shared.poem").write_text("={author}=Shared Poet\n={sign}=with love\n", encoding="utf-8")
    for name, title in (("one.poem", "One"), ("two.poem", "Two")):
        (tmp_path / name).write_text(f"{title}\n2024-01-0{len(title)}\n\n${{sign}}\n", encoding="utf-8")

    _run("to-yaml", "--all", "--dir", str(tmp_path))

    for name in ("one.yaml", "two.yaml"):
        doc = load_document(os.path.join(tmp_path, name))
        assert doc.author == "Shared Poet"
        assert doc.versions[0].segments[0].lines == "with love\n"
