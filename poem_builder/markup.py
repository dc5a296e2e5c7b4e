"""Inline markup to HTML conversion, and the reverse for .poem reconstruction."""

import logging
import re

from poem_builder.constants import (
    ESCAPABLE_CHARS,
    LINK_PREFIX,
    SPAN_CLASS_RE,
    EM_DASH,
    EN_DASH,
    LEFT_SINGLE_QUOTE,
    RIGHT_SINGLE_QUOTE,
    LEFT_DOUBLE_QUOTE,
    RIGHT_DOUBLE_QUOTE,
    AMPERSAND,
    APOSTROPHE,
)

logger = logging.getLogger(__name__)

_ESCAPE_RE = re.compile(r"\\([" + re.escape(ESCAPABLE_CHARS) + r"])")
_LINK_RE = re.compile(r"\[([^\]|]+)\|([^\]]+)\]")
_SPAN_RE = re.compile(r"<<\.([^:>]*):(.*?)>>")
_SINGLE_QUOTE_RE = re.compile(r"`([^`]+)`")
_DOUBLE_QUOTE_RE = re.compile(r'"([^"]+)"')
_STRIKE_RE = re.compile(r"~([^~]+)~")
_STRONG_RE = re.compile(r"\*([^*]+)\*")
_EMPHASIS_RE = re.compile(r"_([^_]+)_")
_BARE_AMPERSAND_RE = re.compile(r"&(?!#\d+;|[a-z]+;)", re.IGNORECASE)

# Inverse direction
_HEADING_BLOCK_RE = re.compile(r"<(h[2-5])[^>]*>\s*(.*?)\s*</\1>", re.DOTALL)
_BLOCK_SPLIT_RE = re.compile(r"\n\n+")
_HEADING_PREFIXES = {"h5": "###", "h4": "##", "h3": "#", "h2": "#"}
_HEADING_TAG_RE = re.compile(r"^<(h[2-5])[^>]*>(.*)</\1>$", re.DOTALL)

_NAMED_ENTITIES = (
    ("&ldquo;", LEFT_DOUBLE_QUOTE),
    ("&rdquo;", RIGHT_DOUBLE_QUOTE),
    ("&lsquo;", LEFT_SINGLE_QUOTE),
    ("&rsquo;", RIGHT_SINGLE_QUOTE),
    ("&mdash;", EM_DASH),
    ("&ndash;", EN_DASH),
    ("&apos;", APOSTROPHE),
    ("&nbsp;", " "),
)
_CHARACTER_ENTITIES = (
    (AMPERSAND, "&"),
    (APOSTROPHE, "'"),
    ("&#34;", '"'),
    ("&#60;", "<"),
    ("&#62;", ">"),
)


def encode_entities(text: str) -> str:
    """Encode bare ampersands and apostrophes, leaving entity references alone."""
    text = _BARE_AMPERSAND_RE.sub(AMPERSAND, text)
    return text.replace("'", APOSTROPHE)


class _Stash:
    """Placeholder store for text that later rules must not touch."""

    def __init__(self, kind: str):
        self.kind = kind
        self.items: list[tuple[str, str]] = []

    def put(self, value: str) -> str:
        placeholder = f"\x00{self.kind}{len(self.items)}\x00"
        self.items.append((placeholder, value))
        return placeholder

    def restore(self, text: str) -> str:
        for placeholder, value in self.items:
            text = text.replace(placeholder, value, 1)
        return text


def convert_markup(text: str, warnings: list[str] | None = None) -> str:
    """Convert one logical unit of inline markup into HTML.

    The rules run in a fixed order: escapes, dashes, links, spans, smart
    quotes, strike/strong/emphasis, entity encoding, escape restoration.
    Span class problems are logged and, when ``warnings`` is given, appended
    to it.
    """
    def warn(message):
        logger.warning(message)
        if warnings is not None:
            warnings.append(message)

    escapes = _Stash("ESCAPE")
    attributes = _Stash("ATTR")

    text = _ESCAPE_RE.sub(lambda m: escapes.put(m.group(1)), text)

    text = text.replace("---", EM_DASH)
    text = text.replace("--", EN_DASH)

    def link(match):
        href = attributes.put(f'href="{encode_entities(LINK_PREFIX + match.group(2))}"')
        return f"<a {href}>{match.group(1)}</a>"

    text = _LINK_RE.sub(link, text)

    def span(match):
        class_name, content = match.group(1), match.group(2)
        if class_name == "":
            warn("Span element with empty class name")
            return f"<span>{content}</span>"
        if not SPAN_CLASS_RE.match(class_name):
            warn(f'Invalid span class name: "{class_name}"')
            return match.group(0)
        attribute = attributes.put('class="%s"' % class_name)
        return f"<span {attribute}>{content}</span>"

    text = _SPAN_RE.sub(span, text)

    text = _SINGLE_QUOTE_RE.sub(LEFT_SINGLE_QUOTE + r"\1" + RIGHT_SINGLE_QUOTE, text)
    text = _DOUBLE_QUOTE_RE.sub(LEFT_DOUBLE_QUOTE + r"\1" + RIGHT_DOUBLE_QUOTE, text)

    text = _STRIKE_RE.sub(r"<s>\1</s>", text)
    text = _STRONG_RE.sub(r"<strong>\1</strong>", text)
    text = _EMPHASIS_RE.sub(r"<em>\1</em>", text)

    text = encode_entities(text)

    text = attributes.restore(text)
    return escapes.restore(text)


# --- Inverse: HTML back to .poem markup ---

def entities_to_markup(text: str) -> str:
    """Decode entities into markup tokens or plain characters.

    Paired smart quotes become quote markup, dash entities become hyphen
    runs, and anything left unpaired falls back to a plain quote character.
    """
    for named, numeric in _NAMED_ENTITIES:
        text = text.replace(named, numeric)

    text = re.sub(f"{LEFT_DOUBLE_QUOTE}(.*?){RIGHT_DOUBLE_QUOTE}", r'"\1"', text)
    text = re.sub(f"{LEFT_SINGLE_QUOTE}(.*?){RIGHT_SINGLE_QUOTE}", r"`\1`", text)

    text = text.replace(EM_DASH, "---")
    text = text.replace(EN_DASH, "--")

    for entity, char in _CHARACTER_ENTITIES:
        text = text.replace(entity, char)

    text = text.replace(LEFT_DOUBLE_QUOTE, '"').replace(RIGHT_DOUBLE_QUOTE, '"')
    text = text.replace(LEFT_SINGLE_QUOTE, "`").replace(RIGHT_SINGLE_QUOTE, "`")
    return text


def strip_html_tags(text: str) -> str:
    """Turn inline tags back into markup tokens, then decode entities."""
    text = re.sub(r"<em>(.*?)</em>", r"_\1_", text)
    text = re.sub(r"<strong>(.*?)</strong>", r"*\1*", text)
    text = re.sub(r"<s>(.*?)</s>", r"~\1~", text)
    text = re.sub(r'<a href="https?://(.*?)">(.*?)</a>', r"[\2|\1]", text)
    text = re.sub(r'<span class="(.*?)">(.*?)</span>', r"<<.\1:\2>>", text)
    text = re.sub(r"<span>(.*?)</span>", r"<<.:\1>>", text)
    return entities_to_markup(text)


def html_to_markup(html: str) -> str:
    """Convert a block sequence of <p>/<hN> elements back to .poem prose.

    Headings are collapsed onto single lines first, then blocks are split on
    blank lines. <h2> and <h3> both map to "#", so the inverse is lossy.
    """
    def collapse(match):
        tag = match.group(1)
        content = re.sub(r"\s+", " ", match.group(2)).strip()
        return f"<{tag}>{content}</{tag}>"

    html = _HEADING_BLOCK_RE.sub(collapse, html)

    result = []
    for block in _BLOCK_SPLIT_RE.split(html.strip()):
        block = block.strip()
        if not block:
            continue
        heading = _HEADING_TAG_RE.match(block)
        if heading:
            prefix = _HEADING_PREFIXES[heading.group(1)]
            result.append(f"{prefix} {strip_html_tags(heading.group(2))}")
        elif block.startswith("<p>") and block.endswith("</p>"):
            result.append(strip_html_tags(block[3:-4]))
        else:
            result.append(entities_to_markup(block))

    return "\n\n".join(result)
