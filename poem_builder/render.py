"""HTML rendering of poems and the index page, and the batch site build."""

import datetime
import logging
import os
from dataclasses import dataclass, field

from jinja2 import Environment, FileSystemLoader
from markupsafe import Markup, escape

from poem_builder.artifacts import list_sources, load_document
from poem_builder.constants import (
    AUDIO_REFERENCE_URLS,
    DATE_RE,
    INDEX_PAGE,
    NBSP,
    SKIP_YAML_FILES,
)
from poem_builder.models import Document
from poem_builder.refs import ReferenceCache, resolve_document_refs

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")
UNKNOWN_DATE = "Unknown Date"
EPOCH = datetime.date(1970, 1, 1)


def format_date_for_display(value) -> str:
    """Format a YYYY-MM-DD date as "Tuesday, 5 March 2024", or "Unknown Date"."""
    if isinstance(value, datetime.date):
        date = value
    else:
        value = str(value or "")
        if not DATE_RE.match(value):
            logger.warning("Invalid date format: %s", value)
            return UNKNOWN_DATE
        try:
            date = datetime.date.fromisoformat(value)
        except ValueError:
            logger.warning("Invalid date: %s", value)
            return UNKNOWN_DATE
    return f"{date.strftime('%A')}, {date.day} {date.strftime('%B %Y')}"


def parse_date_for_sorting(value) -> datetime.date:
    """Date used to order poems; unparseable dates sort as the epoch."""
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.date.fromisoformat(str(value))
    except ValueError:
        return EPOCH


def has_active_audio(doc: Document) -> bool:
    return bool(doc.audio and any(doc.audio.platforms.values()))


def audio_links(doc: Document) -> list[tuple[str, str | None]]:
    """(platform, url or None) pairs for the audio section."""
    if not doc.audio:
        return []
    links = []
    for platform, value in doc.audio.platforms.items():
        if not value:
            continue
        url = None
        if isinstance(value, str) and platform in AUDIO_REFERENCE_URLS:
            url = AUDIO_REFERENCE_URLS[platform] + value
        links.append((platform, url))
    return links


def line_breaks(lines: str) -> Markup:
    """Segment lines joined with <br>.

    Lines are plain text apart from &nbsp; space encoding, so each piece
    between the &nbsp; entities is escaped.
    """
    escaped = [NBSP.join(escape(part) for part in line.split(NBSP))
               for line in lines.rstrip("\n").split("\n")]
    return Markup("<br>\n".join(escaped))


def _environment() -> Environment:
    env = Environment(loader=FileSystemLoader(TEMPLATES_DIR), autoescape=True)
    env.filters["display_date"] = format_date_for_display
    env.filters["line_breaks"] = line_breaks
    return env


def render_document(doc: Document) -> str:
    """Render one poem page."""
    template = _environment().get_template("poem.html.j2")
    return template.render(poem=doc, slug=doc.slug, audio=audio_links(doc))


def render_index(docs: list[Document]) -> str:
    """Render the index page, poems ordered oldest first."""
    entries = sorted(docs, key=lambda d: parse_date_for_sorting(d.date))
    template = _environment().get_template("index.html.j2")
    return template.render(
        poems=[{"poem": d, "slug": d.slug, "audio": has_active_audio(d)} for d in entries],
    )


@dataclass
class BuildReport:
    built: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def build_site(poems_dir: str, public_dir: str, cache: ReferenceCache | None = None) -> BuildReport:
    """Render every stored poem in poems_dir to public_dir/<slug>.html plus the index.

    The reference cache is cleared first so each batch reads targets fresh.
    A failing poem is logged and counted; the rest of the batch continues.
    """
    if cache is None:
        cache = ReferenceCache()
    cache.clear()

    report = BuildReport()
    names = list_sources(poems_dir, ".yaml")
    os.makedirs(public_dir, exist_ok=True)

    docs = []
    for name in names:
        if name in SKIP_YAML_FILES:
            report.skipped.append(name)
            continue
        try:
            doc = load_document(os.path.join(poems_dir, name))
            if not doc.title or not doc.versions:
                raise ValueError("missing title or versions")
            doc = resolve_document_refs(doc, poems_dir, cache)
            html = render_document(doc)
            with open(os.path.join(public_dir, f"{doc.slug}.html"), "w", encoding="utf-8") as f:
                f.write(html)
        except Exception as e:
            logger.error("Error building %s: %s", name, e)
            report.errors.append((name, str(e)))
            continue
        docs.append(doc)
        report.built.append(name)

    with open(os.path.join(public_dir, INDEX_PAGE), "w", encoding="utf-8") as f:
        f.write(render_index(docs))

    return report
