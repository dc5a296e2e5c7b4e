"""Tests for markup module (Layer 1b)."""

import logging

from poem_builder.markup import (
    convert_markup,
    encode_entities,
    entities_to_markup,
    html_to_markup,
    strip_html_tags,
)


# --- Inline markup ---

def test_strong_emphasis_and_quotes():
    """Bold, emphasis and double quotes convert together."""
    result = convert_markup('*bold* and _em_ and "quoted"')
    assert result == "<strong>bold</strong> and <em>em</em> and &#8220;quoted&#8221;"


def test_link():
    """[text|url] becomes an https anchor."""
    assert convert_markup("[Click|example.com/x]") == '<a href="https://example.com/x">Click</a>'


def test_link_href_ampersand_encoded():
    """Ampersands in link targets are entity-encoded."""
    result = convert_markup("[Go|example.com/?a=1&b=2]")
    assert result == '<a href="https://example.com/?a=1&#38;b=2">Go</a>'


def test_dashes():
    """--- is an em dash and -- an en dash."""
    assert convert_markup("a---b--c") == "a&#8212;b&#8211;c"


def test_single_quotes_and_strike():
    """Backtick pairs become single smart quotes; ~x~ strikes."""
    assert convert_markup("`hi` ~gone~") == "&#8216;hi&#8217; <s>gone</s>"


def test_apostrophe_and_ampersand_encoded():
    """Bare ' and & are encoded."""
    assert convert_markup("rock & roll's") == "rock &#38; roll&#39;s"


def test_escapes_are_literal():
    """Escaped markup characters are emitted unchanged."""
    assert convert_markup(r"\*not bold\*") == "*not bold*"


def test_span_with_class():
    """<<.class:text>> becomes a classed span."""
    assert convert_markup("<<.small-caps:Quiet>>") == '<span class="small-caps">Quiet</span>'


def test_span_empty_class_warns(caplog):
    """Empty class emits a bare span and a warning."""
    warnings = []
    with caplog.at_level(logging.WARNING):
        result = convert_markup("<<.:text>>", warnings=warnings)
    assert result == "<span>text</span>"
    assert warnings == ["Span element with empty class name"]
    assert "empty class name" in caplog.text


def test_span_invalid_class_left_alone(caplog):
    """Invalid class name leaves the span markup untransformed."""
    warnings = []
    with caplog.at_level(logging.WARNING):
        result = convert_markup("<<.-bad:text>>", warnings=warnings)
    assert "span" not in result
    assert "text" in result
    assert len(warnings) == 1
    assert "Invalid span class name" in warnings[0]


def test_encode_entities_keeps_existing():
    """Existing entity references are not double-encoded."""
    assert encode_entities("&#8212; &nbsp; &") == "&#8212; &nbsp; &#38;"


# --- Inverse ---

def test_entities_to_markup_pairs_quotes():
    """Paired smart quotes become quote markup."""
    assert entities_to_markup("&#8220;hi&#8221; &#8216;yo&#8217;") == '"hi" `yo`'


def test_entities_to_markup_named_entities():
    """Named entities are handled like their numeric forms."""
    assert entities_to_markup("a&mdash;b&ndash;c") == "a---b--c"


def test_entities_to_markup_unpaired_quote():
    """A lone right quote falls back to a plain character."""
    assert entities_to_markup("it&#8217;s") == "it`s"


def test_strip_html_tags():
    """Inline tags map back to their markup tokens."""
    html = '<strong>b</strong> <em>e</em> <s>x</s> <a href="https://example.com">L</a>'
    assert strip_html_tags(html) == "*b* _e_ ~x~ [L|example.com]"


def test_strip_html_tags_spans():
    """Spans map back to span markup."""
    assert strip_html_tags('<span class="c">t</span> <span>u</span>') == "<<.c:t>> <<.:u>>"


def test_html_to_markup_blocks():
    """Paragraphs and headings become prose blocks."""
    html = "<h3>Title</h3>\n\n<p>One &#38; two.</p>\n\n<h4>Sub</h4>\n\n<h5>Deep</h5>\n"
    assert html_to_markup(html) == "# Title\n\nOne & two.\n\n## Sub\n\n### Deep"


def test_html_to_markup_collapses_heading_whitespace():
    """Multi-line heading content is collapsed to one line."""
    assert html_to_markup("<h3>\n  A\n  heading\n</h3>") == "# A heading"


def test_markup_round_trip():
    """Converting markup to HTML and back restores the source."""
    source = '*bold* _em_ "quote" a--b [L|example.com/p]'
    assert html_to_markup(f"<p>{convert_markup(source)}</p>") == source
