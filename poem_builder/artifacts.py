"""Source reading, YAML artifacts, slugs and freshness checks."""

import os
import re

import yaml

from poem_builder.constants import SHARED_POEM_FILE
from poem_builder.models import Document
from poem_builder.parser import parse_poem


class _ArtifactDumper(yaml.SafeDumper):
    """SafeDumper that writes multi-line strings as literal blocks."""


def _represent_str(dumper, value):
    if "\n" in value:
        return dumper.represent_scalar("tag:yaml.org,2002:str", value, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", value)


_ArtifactDumper.add_representer(str, _represent_str)


def slugify(text: str) -> str:
    """Convert a title to a URL slug.

    "The Open Window" → "the-open-window"
    "Fragments & Unity" → "fragments-unity"
    """
    text = text.lower().strip()
    text = re.sub(r"[^a-z0-9 -]", "", text)
    return re.sub(r" +", "-", text)


def slug_from_path(path: str) -> str:
    """Slug of a source file name: "/poems/Rain Song.poem" → "rain-song"."""
    basename = os.path.splitext(os.path.basename(path))[0]
    return slugify(basename.replace("_", " "))


def read_poem_source(path: str) -> str:
    """Read a .poem file, prefixed with .shared.poem from the same directory."""
    with open(path, encoding="utf-8") as f:
        content = f.read()

    shared_path = os.path.join(os.path.dirname(path), SHARED_POEM_FILE)
    if os.path.abspath(shared_path) != os.path.abspath(path) and os.path.exists(shared_path):
        with open(shared_path, encoding="utf-8") as f:
            shared = f.read()
        if shared and not shared.endswith("\n"):
            shared += "\n"
        content = shared + content

    return content


def convert_poem_file(path: str) -> Document:
    """Parse a .poem file (with its shared include) into a Document."""
    return parse_poem(read_poem_source(path))


def dump_yaml(data) -> str:
    """Serialize data as YAML: block literals, no wrapping, no anchors."""
    return yaml.dump(
        data,
        Dumper=_ArtifactDumper,
        sort_keys=False,
        allow_unicode=True,
        width=float("inf"),
        default_flow_style=False,
    )


def write_artifact(path: str, data: dict) -> str:
    """Write data as YAML to path. Returns the path."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(dump_yaml(data))
    return path


def load_artifact(path: str) -> dict | None:
    """Read a YAML artifact. Returns None if the file doesn't exist."""
    if not os.path.exists(path):
        return None
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def load_document(path: str) -> Document:
    """Load a stored Document. Raises FileNotFoundError if missing."""
    data = load_artifact(path)
    if data is None:
        raise FileNotFoundError(f"No such file: {path}")
    if not isinstance(data, dict):
        raise ValueError(f"Not a poem document: {path}")
    return Document.from_dict(data)


def list_sources(directory: str, suffix: str, skip: tuple[str, ...] = ()) -> list[str]:
    """Sorted file names in directory ending with suffix, minus skip and hidden files."""
    if not os.path.isdir(directory):
        raise FileNotFoundError(f"Directory not found: {directory}")
    return sorted(
        name for name in os.listdir(directory)
        if name.endswith(suffix)
        and not name.startswith(".")
        and name not in skip
        and os.path.isfile(os.path.join(directory, name))
    )


def is_fresh(source_path: str, target_path: str) -> bool:
    """Is target up to date? True if it exists and is not older than source."""
    if not os.path.exists(target_path):
        return False
    if not os.path.exists(source_path):
        return True
    return os.path.getmtime(target_path) >= os.path.getmtime(source_path)
