"""Parse .poem source text into a Document."""

import logging
import re

import yaml

from poem_builder.constants import (
    AUTHOR_VAR,
    AUDIO_FLAG_PLATFORMS,
    AUDIO_REFERENCE_PLATFORMS,
    DATE_RE,
    DEFAULT_AUTHOR,
    DIVIDER,
    FULL_LABEL,
    HEADING_BASE_LEVEL,
    LITERAL_CLOSE,
    LITERAL_OPEN,
    NBSP,
    REF_KEY,
    RESERVED_LABELS,
    SECTION_END,
    SYNOPSIS_LABEL,
)
from poem_builder.markup import convert_markup
from poem_builder.models import Analysis, Audio, Document, PostscriptNote, Segment, Version
from poem_builder.preprocess import preprocess

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^(#{1,3}) (.*)$")
_INNER_SPACES_RE = re.compile(r" {2,}")


class PoemSyntaxError(ValueError):
    """Fatal structural problem: the document cannot be parsed."""


def _version_label(stripped: str) -> str | None:
    """Label text of a {{ label }} line, or None."""
    if stripped.startswith("{{") and stripped.endswith("}}"):
        return stripped[2:-2].strip()
    return None


def _segment_label(stripped: str) -> str | None:
    """Label text of a { label } line, or None.

    Empty labels and the reserved analysis labels are not labels.
    """
    if stripped.startswith("{") and stripped.endswith("}") and not stripped.startswith("{{"):
        label = stripped[1:-1].strip()
        if label and label not in RESERVED_LABELS:
            return label
    return None


def _opens_label(stripped: str) -> bool:
    """Lookahead predicate: does this line unambiguously open a new unit?"""
    return stripped.startswith("{{") or stripped.startswith("{")


def convert_spaces(line: str) -> str:
    """Encode spaces so rendered lines keep their visual width.

    Leading spaces become &nbsp; each. Inner runs of two or more spaces keep
    one breakable space followed by &nbsp; for the rest.
    """
    stripped = line.lstrip(" ")
    indent = len(line) - len(stripped)
    line = NBSP * indent + stripped
    return _INNER_SPACES_RE.sub(lambda m: " " + NBSP * (len(m.group(0)) - 1), line)


def _parse_literal_ref(content: str) -> str | None:
    """Return the $ref target when a literal block holds only a reference."""
    if f"{REF_KEY}:" not in content:
        return None
    try:
        parsed = yaml.safe_load(content.strip())
    except yaml.YAMLError:
        return None
    if isinstance(parsed, list) and parsed and isinstance(parsed[0], dict):
        parsed = parsed[0]
    if isinstance(parsed, dict) and parsed.get(REF_KEY):
        return str(parsed[REF_KEY])
    return None


class PoemParser:
    """Single-use parser for one .poem document.

    Sections are read in order: header, versions, audio, postscript,
    analysis. Every section after the header is optional and the end of
    input is a valid place to stop.
    """

    def __init__(self, content: str):
        lines = content.replace("\r\n", "\n").split("\n")
        self.lines, self.variables = preprocess(lines)
        self.index = 0
        self.warnings: list[str] = []

    # --- Cursor ---

    def peek(self) -> str | None:
        return self.lines[self.index] if self.index < len(self.lines) else None

    def next(self) -> str | None:
        line = self.peek()
        if line is not None:
            self.index += 1
        return line

    def eof(self) -> bool:
        return self.index >= len(self.lines)

    def skip_blank_lines(self) -> None:
        while self.peek() is not None and not self.peek().strip():
            self.index += 1

    def expect_marker(self, marker: str) -> bool:
        """Consume marker (surrounded by blank lines) if it is next."""
        self.skip_blank_lines()
        line = self.peek()
        if line is not None and line.strip() == marker:
            self.next()
            self.skip_blank_lines()
            return True
        return False

    def substitute(self, text: str) -> str:
        return self.variables.substitute(text)

    def markup(self, text: str) -> str:
        return convert_markup(text, warnings=self.warnings)

    # --- Document ---

    def parse(self) -> Document:
        title, author, date = self.parse_header()
        doc = Document(title=title, date=date, author=author)
        doc.versions = self.parse_versions()
        if not doc.versions:
            raise PoemSyntaxError("Missing poem body: no version with at least one segment")

        sections = (
            ("audio", self.parse_audio),
            ("postscript", self.parse_postscript),
            ("analysis", self.parse_analysis),
        )
        for name, parse_section in sections:
            if self.eof():
                break
            self.expect_marker(SECTION_END)
            if self.eof():
                break
            setattr(doc, name, parse_section())

        for name in self.variables.undefined:
            message = f"Variable '${{{name}}}' used but not defined"
            logger.warning(message)
            self.warnings.append(message)

        return doc

    def parse_header(self) -> tuple[str, str, str]:
        self.skip_blank_lines()

        title = self.next()
        if title is None:
            raise PoemSyntaxError("Missing title")
        title = self.substitute(title.strip())

        line = self.next()
        if line is None or not line.strip():
            raise PoemSyntaxError("Invalid or missing date")

        candidate = self.substitute(line.strip())
        if DATE_RE.match(candidate):
            author = DEFAULT_AUTHOR
            if AUTHOR_VAR in self.variables:
                author = self.substitute("${" + AUTHOR_VAR + "}")
            date = candidate
        else:
            author = candidate
            line = self.next()
            date = self.substitute(line.strip()) if line is not None else ""
            if not DATE_RE.match(date):
                raise PoemSyntaxError("Invalid or missing date")

        self.skip_blank_lines()
        return title, author, date

    # --- Versions ---

    def parse_versions(self) -> list[Version]:
        versions = []
        while True:
            start = self.index
            version = self.parse_version()
            if version:
                versions.append(version)

            self.skip_blank_lines()
            line = self.peek()
            if line is None:
                break
            stripped = line.strip()
            if stripped == DIVIDER:
                self.next()
                self.skip_blank_lines()
            elif not _opens_label(stripped) or self.index == start:
                break
        return versions

    def parse_version(self) -> Version | None:
        self.skip_blank_lines()
        line = self.peek()
        if line is None or line.strip() == SECTION_END:
            return None

        version = Version()
        label = _version_label(line.strip())
        if label is not None:
            if label:
                version.label = self.substitute(label) or None
            self.next()
            self.skip_blank_lines()

        while True:
            self.skip_blank_lines()
            line = self.peek()
            if line is None or line.strip() in (DIVIDER, SECTION_END):
                break
            if _version_label(line.strip()) is not None:
                break
            start = self.index
            segment = self.parse_segment()
            if segment is not None:
                version.segments.append(segment)
            elif self.index == start:
                break

        return version if version.segments else None

    def parse_segment(self) -> Segment | None:
        self.skip_blank_lines()
        line = self.peek()
        if line is None or line.strip() in (DIVIDER, SECTION_END):
            return None

        label = _segment_label(line.strip())
        if label is not None:
            label = self.substitute(label) or None
            self.next()
            self.skip_blank_lines()

        content = []
        while True:
            line = self.peek()
            if line is None:
                break
            stripped = line.strip()
            if stripped in (DIVIDER, SECTION_END):
                break
            if _segment_label(stripped) is not None or _version_label(stripped) is not None:
                break
            content.append(self.substitute(self.next()))

        while content and not content[-1].strip():
            content.pop()
        if not content:
            return None

        lines = "\n".join(convert_spaces(line) for line in content) + "\n"
        return Segment(lines=lines, label=label)

    # --- Audio ---

    def parse_audio(self) -> Audio | None:
        self.skip_blank_lines()
        platforms = {}

        while True:
            line = self.peek()
            if line is None or line.strip() == SECTION_END:
                break
            stripped = self.substitute(line.strip())
            if not stripped:
                self.next()
                continue
            if stripped in AUDIO_FLAG_PLATFORMS:
                platforms[AUDIO_FLAG_PLATFORMS[stripped]] = True
                self.next()
                continue
            prefix, sep, value = stripped.partition(":")
            if sep and prefix.strip() in AUDIO_REFERENCE_PLATFORMS:
                if value.strip():
                    platforms[AUDIO_REFERENCE_PLATFORMS[prefix.strip()]] = value.strip()
                self.next()
                continue
            break

        self.skip_blank_lines()
        return Audio(platforms=platforms) if platforms else None

    # --- Postscript ---

    def parse_postscript(self) -> list[PostscriptNote] | None:
        notes = []

        while True:
            self.skip_blank_lines()
            line = self.peek()
            if line is None or line.strip() in (SECTION_END, SYNOPSIS_LABEL, FULL_LABEL):
                break

            start = self.index
            note = self.parse_postscript_note()
            if note is not None:
                notes.append(note)
            elif self.index == start:
                break

            self.skip_blank_lines()
            line = self.peek()
            if line is None:
                break
            stripped = line.strip()
            if stripped == DIVIDER:
                self.next()
            elif not (_opens_label(stripped) or stripped == LITERAL_OPEN):
                break

        self.skip_blank_lines()
        return notes or None

    def _ends_prose(self, stripped: str) -> bool:
        return (
            stripped in (DIVIDER, SECTION_END, LITERAL_OPEN, SYNOPSIS_LABEL, FULL_LABEL)
            or _segment_label(stripped) is not None
        )

    def parse_postscript_note(self) -> PostscriptNote | None:
        self.skip_blank_lines()
        line = self.peek()
        if line is None or line.strip() == SECTION_END:
            return None

        if line.strip() == LITERAL_OPEN:
            ref, content = self.parse_literal_block()
            if ref:
                return PostscriptNote(ref=ref)
            return PostscriptNote(content=content) if content.strip() else None

        note = PostscriptNote()
        label = _segment_label(line.strip())
        if label is not None:
            note.label = self.substitute(label) or None
            self.next()
            self.skip_blank_lines()

        paragraphs = []
        current = []
        while True:
            line = self.peek()
            if line is None or self._ends_prose(line.strip()):
                break
            stripped = line.strip()
            if stripped:
                current.append(self.substitute(stripped))
            elif current:
                paragraphs.append(self.markup(" ".join(current)))
                current = []
            self.next()
        if current:
            paragraphs.append(self.markup(" ".join(current)))

        if paragraphs:
            note.content = "\n\n".join(f"<p>{p}</p>" for p in paragraphs) + "\n"

        while True:
            self.skip_blank_lines()
            line = self.peek()
            if line is None or line.strip() != LITERAL_OPEN:
                break
            ref, content = self.parse_literal_block()
            if ref:
                return PostscriptNote(ref=ref)
            if content:
                note.content = (note.content or "") + "\n" + content

        return note if note.content or note.label else None

    def parse_literal_block(self) -> tuple[str | None, str]:
        """Read <<< ... >>> verbatim. Returns (ref, content).

        An unterminated block runs to the end of input.
        """
        self.next()
        lines = []
        while True:
            line = self.peek()
            if line is None:
                break
            if line.strip() == LITERAL_CLOSE:
                self.next()
                break
            lines.append(self.next())

        content = "\n".join(lines)
        return _parse_literal_ref(content), content

    # --- Analysis ---

    def parse_analysis(self) -> Analysis | None:
        self.skip_blank_lines()
        line = self.peek()
        if line is None or line.strip() == SECTION_END:
            return None

        analysis = Analysis()
        if line.strip() == SYNOPSIS_LABEL:
            self.next()
            self.skip_blank_lines()
            analysis.synopsis = self.parse_analysis_content()
            self.skip_blank_lines()

        line = self.peek()
        if line is not None and line.strip() == FULL_LABEL:
            self.next()
            self.skip_blank_lines()
            analysis.full = self.parse_analysis_content()

        self.skip_blank_lines()
        line = self.peek()
        if line is not None and line.strip() != SECTION_END:
            message = f"Ignoring unexpected analysis content at line: {line.strip()!r}"
            logger.warning(message)
            self.warnings.append(message)

        if analysis.synopsis or analysis.full:
            return analysis
        return None

    def parse_analysis_content(self) -> str | None:
        blocks = []
        current = []

        def flush():
            if current:
                blocks.append(f"<p>{self.markup(' '.join(current))}</p>")
                current.clear()

        while True:
            line = self.peek()
            if line is None:
                break
            stripped = line.strip()
            if stripped in (SECTION_END, SYNOPSIS_LABEL, FULL_LABEL):
                break

            heading = _HEADING_RE.match(stripped)
            if heading:
                flush()
                level = HEADING_BASE_LEVEL + len(heading.group(1)) - 1
                text = self.markup(self.substitute(heading.group(2).strip()))
                blocks.append(f"<h{level}>{text}</h{level}>")
            elif not stripped:
                flush()
            else:
                current.append(self.substitute(stripped))
            self.next()
        flush()

        return "\n\n".join(blocks) + "\n" if blocks else None


def parse_poem(content: str) -> Document:
    """Parse .poem source text. Raises PoemSyntaxError on fatal problems."""
    return PoemParser(content).parse()
