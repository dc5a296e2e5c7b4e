"""Reconstruct .poem source text from a Document."""

from poem_builder.constants import (
    AUDIO_FLAG_PLATFORMS,
    AUDIO_REFERENCE_PLATFORMS,
    DEFAULT_AUTHOR,
    DIVIDER,
    FULL_LABEL,
    LITERAL_CLOSE,
    LITERAL_OPEN,
    NBSP,
    REF_KEY,
    SECTION_END,
    SYNOPSIS_LABEL,
)
from poem_builder.markup import html_to_markup
from poem_builder.models import Document
from poem_builder.parser import PoemSyntaxError

# storage name -> source token
_FLAG_TOKENS = {key: token for token, key in AUDIO_FLAG_PLATFORMS.items()}
_REFERENCE_PREFIXES = {key: prefix for prefix, key in AUDIO_REFERENCE_PLATFORMS.items()}


def _split_note_content(content: str) -> tuple[str, str | None]:
    """Split note content into its leading <p> prose and trailing literal text.

    Prose paragraphs end in "</p>\\n"; literal blocks follow after one more "\\n".
    Content with no closed <p> paragraph is entirely literal.
    """
    if not content.startswith("<p>"):
        return "", content
    pos = 0
    while True:
        end = content.find("</p>\n", pos)
        if end == -1:
            if content.rstrip().endswith("</p>"):
                return content, None
            return "", content
        after = end + len("</p>\n")
        if not content.startswith("\n<p>", after):
            break
        pos = after + 1
    rest = content[after:]
    return content[:after], rest[1:] if rest else None


class PoemWriter:
    """Accumulates .poem output lines for one Document."""

    def __init__(self, doc: Document):
        self.doc = doc
        self.lines: list[str] = []

    def add(self, line: str = "") -> None:
        self.lines.append(line)

    def blank(self, count: int = 1) -> None:
        self.lines.extend([""] * count)

    def write(self) -> str:
        self.write_header()
        self.write_versions()
        self.write_audio()
        self.write_postscript()
        self.write_analysis()
        return "\n".join(self.lines)

    def write_header(self) -> None:
        self.add(self.doc.title)
        if self.doc.author and self.doc.author != DEFAULT_AUTHOR:
            self.add(self.doc.author)
        self.add(self.doc.date)
        self.blank()

    def write_versions(self) -> None:
        versions = self.doc.versions
        if not versions:
            raise PoemSyntaxError("No versions found in document")

        for i, version in enumerate(versions):
            if version.label:
                self.add(f"{{{{ {version.label} }}}}")
                self.blank()

            if not version.segments:
                raise PoemSyntaxError(f"Version {i + 1} has no segments")

            for j, segment in enumerate(version.segments):
                if segment.label:
                    self.add(f"{{{segment.label}}}")
                lines = segment.lines[:-1] if segment.lines.endswith("\n") else segment.lines
                self.add(lines.replace(NBSP, " "))
                if j < len(version.segments) - 1:
                    self.blank()

            if i < len(versions) - 1:
                self.blank(2)
                self.add(DIVIDER)
                self.blank(2)

        self.blank()
        self.add(SECTION_END)
        self.blank()

    def write_audio(self) -> None:
        audio = self.doc.audio
        if audio and audio.platforms:
            for key, value in audio.platforms.items():
                if key in _FLAG_TOKENS and value:
                    self.add(_FLAG_TOKENS[key])
                elif key in _REFERENCE_PREFIXES and value:
                    self.add(f"{_REFERENCE_PREFIXES[key]}: {value}")
            self.blank()

        self.add(SECTION_END)
        self.blank()

    def write_postscript(self) -> None:
        notes = self.doc.postscript or []
        for i, note in enumerate(notes):
            if note.ref:
                self.add(LITERAL_OPEN)
                self.add(f'  - {REF_KEY}: "{note.ref}"')
                self.add(LITERAL_CLOSE)
            else:
                if note.label:
                    self.add(f"{{{note.label}}}")
                if note.content:
                    self.write_note_content(note)

            if i < len(notes) - 1:
                self.blank(2)
                self.add(DIVIDER)
                self.blank()

        if notes:
            self.blank()
        self.add(SECTION_END)
        self.blank()

    def write_note_content(self, note) -> None:
        prose, literal = _split_note_content(note.content)
        if prose:
            self.add(html_to_markup(prose))
        if literal is None:
            return
        # labelled notes store literal text after a separating "\n"
        if not prose and note.label and literal.startswith("\n"):
            literal = literal[1:]
        if prose:
            self.blank()
        self.add(LITERAL_OPEN)
        self.add(literal)
        self.add(LITERAL_CLOSE)

    def write_analysis(self) -> None:
        analysis = self.doc.analysis
        if not analysis or not (analysis.synopsis or analysis.full):
            return

        if analysis.synopsis:
            self.add(SYNOPSIS_LABEL)
            self.blank()
            self.add(html_to_markup(analysis.synopsis))
            self.blank(2)

        if analysis.full:
            self.add(FULL_LABEL)
            self.blank()
            self.add(html_to_markup(analysis.full))
            self.blank()

        self.add(SECTION_END)


def document_to_poem(doc: Document) -> str:
    """Render a Document back into .poem source text."""
    return PoemWriter(doc).write()
