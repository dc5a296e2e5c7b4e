"""Data models for parsed poems."""

import datetime
from dataclasses import dataclass, field

from poem_builder.constants import DEFAULT_AUTHOR, REF_KEY


@dataclass
class Segment:
    lines: str                  # verbatim block ending in a single "\n"
    label: str | None = None

    def to_dict(self) -> dict:
        data = {}
        if self.label:
            data["label"] = self.label
        data["lines"] = self.lines
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Segment":
        return cls(lines=data.get("lines", ""), label=data.get("label"))


@dataclass
class Version:
    segments: list[Segment] = field(default_factory=list)
    label: str | None = None

    def to_dict(self) -> dict:
        data = {}
        if self.label:
            data["label"] = self.label
        data["segments"] = [s.to_dict() for s in self.segments]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Version":
        return cls(
            segments=[Segment.from_dict(s) for s in data.get("segments") or []],
            label=data.get("label"),
        )


@dataclass
class Audio:
    platforms: dict = field(default_factory=dict)   # "audiomack" -> True, "suno" -> "url suffix"

    def to_dict(self) -> dict:
        return dict(self.platforms)

    @classmethod
    def from_dict(cls, data: dict) -> "Audio":
        return cls(platforms=dict(data))


@dataclass
class PostscriptNote:
    label: str | None = None
    content: str | None = None
    ref: str | None = None      # bare "$ref" pointer, excludes label/content

    def to_dict(self) -> dict:
        if self.ref:
            return {REF_KEY: self.ref}
        data = {}
        if self.label:
            data["label"] = self.label
        if self.content is not None:
            data["content"] = self.content
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "PostscriptNote":
        if data.get(REF_KEY):
            return cls(ref=data[REF_KEY])
        return cls(label=data.get("label"), content=data.get("content"))


@dataclass
class Analysis:
    synopsis: str | None = None
    full: str | None = None

    def to_dict(self) -> dict:
        data = {}
        if self.synopsis:
            data["synopsis"] = self.synopsis
        if self.full:
            data["full"] = self.full
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Analysis":
        return cls(synopsis=data.get("synopsis") or None, full=data.get("full") or None)


@dataclass
class Document:
    title: str
    date: str
    author: str = DEFAULT_AUTHOR
    versions: list[Version] = field(default_factory=list)
    audio: Audio | None = None
    postscript: list[PostscriptNote] | None = None
    analysis: Analysis | None = None

    @property
    def slug(self) -> str:
        from poem_builder.artifacts import slugify
        return slugify(self.title)

    def to_dict(self) -> dict:
        """Storage layout, in the key order written to YAML."""
        data = {
            "title": self.title,
            "author": self.author,
            "date": self.date,
            "versions": [v.to_dict() for v in self.versions],
        }
        if self.audio and self.audio.platforms:
            data["audio"] = self.audio.to_dict()
        if self.postscript:
            data["postscript"] = [n.to_dict() for n in self.postscript]
        if self.analysis and (self.analysis.synopsis or self.analysis.full):
            data["analysis"] = self.analysis.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Document":
        """Build a Document from its storage layout.

        YAML loads unquoted dates as datetime.date; those are normalized back
        to YYYY-MM-DD strings.
        """
        date = data.get("date", "")
        if isinstance(date, (datetime.date, datetime.datetime)):
            date = date.strftime("%Y-%m-%d")
        audio = data.get("audio")
        postscript = data.get("postscript")
        analysis = data.get("analysis")
        return cls(
            title=str(data.get("title", "")),
            date=str(date),
            author=data.get("author", DEFAULT_AUTHOR),
            versions=[Version.from_dict(v) for v in data.get("versions") or []],
            audio=Audio.from_dict(audio) if audio else None,
            postscript=[PostscriptNote.from_dict(n) for n in postscript] if postscript else None,
            analysis=Analysis.from_dict(analysis) if analysis else None,
        )
