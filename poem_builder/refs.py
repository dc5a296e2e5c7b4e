"""Resolution of $ref postscript notes against shared YAML files."""

import logging
import os
from dataclasses import replace

import yaml

from poem_builder.models import Document, PostscriptNote

logger = logging.getLogger(__name__)


class ReferenceResolutionError(Exception):
    """A $ref target file or pointer segment could not be resolved."""


class ReferenceCache:
    """Resolved reference targets for one batch build.

    Keys are (absolute path, pointer or None). The whole-file entry is kept
    under a None pointer so every pointer into one file shares a single read.
    ``reads`` counts actual file reads.
    """

    def __init__(self):
        self.entries: dict[tuple[str, str | None], object] = {}
        self.reads = 0

    def __contains__(self, key) -> bool:
        return key in self.entries

    def get(self, key):
        return self.entries[key]

    def put(self, key, value) -> None:
        self.entries[key] = value

    def clear(self) -> None:
        self.entries.clear()
        self.reads = 0

    def load_file(self, path: str):
        key = (path, None)
        if key in self.entries:
            return self.entries[key]
        if not os.path.isfile(path):
            raise ReferenceResolutionError(f"Reference target not found: {path}")
        self.reads += 1
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ReferenceResolutionError(f"Could not read reference target {path}: {e}") from e
        self.entries[key] = data
        return data


def split_ref(ref: str) -> tuple[str, str | None]:
    """Split a reference: "shared.yaml#/notes/0" → ("shared.yaml", "/notes/0")."""
    path, sep, pointer = ref.partition("#")
    return path.strip(), (pointer or None) if sep else None


def resolve_pointer(data, pointer: str | None):
    """Navigate a JSON pointer ("/a/b/0") into loaded data."""
    if not pointer or pointer == "/":
        return data
    node = data
    for part in pointer.lstrip("/").split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if isinstance(node, dict) and part in node:
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            raise ReferenceResolutionError(f"Unresolvable pointer segment '{part}' in '{pointer}'")
    return node


def resolve_ref(ref: str, base_dir: str, cache: ReferenceCache):
    """Return the value a $ref points at, reading each target at most once per batch."""
    path, pointer = split_ref(ref)
    if not path:
        raise ReferenceResolutionError(f"Reference without a file: {ref}")
    abs_path = os.path.abspath(os.path.join(base_dir, path))
    key = (abs_path, pointer)
    if key in cache:
        return cache.get(key)

    value = resolve_pointer(cache.load_file(abs_path), pointer)
    cache.put(key, value)
    return value


def _notes_from_value(value, ref: str) -> list[PostscriptNote]:
    if isinstance(value, str):
        return [PostscriptNote(content=value)]
    if isinstance(value, dict):
        return [PostscriptNote.from_dict(value)]
    if isinstance(value, list) and all(isinstance(v, (dict, str)) for v in value):
        notes = []
        for item in value:
            notes.extend(_notes_from_value(item, ref))
        return notes
    raise ReferenceResolutionError(f"Reference {ref} does not point at a postscript note")


def resolve_document_refs(doc: Document, base_dir: str, cache: ReferenceCache) -> Document:
    """Return a copy of doc with $ref postscript notes replaced by their targets.

    Failures are logged and leave the $ref note as it was.
    """
    if not doc.postscript or not any(note.ref for note in doc.postscript):
        return doc

    notes = []
    for note in doc.postscript:
        if not note.ref:
            notes.append(note)
            continue
        try:
            notes.extend(_notes_from_value(resolve_ref(note.ref, base_dir, cache), note.ref))
        except ReferenceResolutionError as e:
            logger.warning("%s (in '%s')", e, doc.title)
            notes.append(note)

    return replace(doc, postscript=notes)
