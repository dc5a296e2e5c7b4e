"""CLI interface with subcommand routing for conversion and site builds."""

import argparse
import logging
import os
import sys

from poem_builder.constants import (
    POEMS_DIR,
    PUBLIC_DIR,
    SKIP_YAML_FILES,
    VERSION,
)
from poem_builder.artifacts import (
    convert_poem_file,
    is_fresh,
    list_sources,
    load_document,
    read_poem_source,
    slug_from_path,
    write_artifact,
)
from poem_builder.parser import PoemParser, PoemSyntaxError
from poem_builder.writer import document_to_poem


def _require_file(path: str) -> None:
    if not os.path.isfile(path):
        print(f"Error: File not found: {path}", file=sys.stderr)
        raise SystemExit(1)


def _require_dir(path: str) -> None:
    if not os.path.isdir(path):
        print(f"Error: Directory not found: {path}", file=sys.stderr)
        raise SystemExit(1)


def _target_path(source: str, output: str | None, suffix: str) -> str:
    if output:
        return output
    return os.path.splitext(source)[0] + suffix


def _write_text(path: str, text: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def _poem_to_data(path: str) -> dict:
    return convert_poem_file(path).to_dict()


def _yaml_to_poem_text(path: str) -> str:
    return document_to_poem(load_document(path))


def _convert_one(args, suffix: str, convert, write) -> None:
    """Convert a single file; any failure is fatal."""
    _require_file(args.file)
    target = _target_path(args.file, args.output, suffix)
    try:
        result = convert(args.file)
    except (PoemSyntaxError, ValueError, OSError) as e:
        print(f"Error: {args.file}: {e}", file=sys.stderr)
        raise SystemExit(1)
    write(target, result)
    print(f"Converted: {args.file} → {target}")


def _convert_all(directory: str, source_suffix: str, target_suffix: str, convert, write,
                 force: bool = False, skip: tuple[str, ...] = ()) -> None:
    """Convert every source in directory, one line per file and a tally.

    A failing file is reported and counted; the batch continues. Exits 1 if
    any file failed.
    """
    _require_dir(directory)
    names = list_sources(directory, source_suffix, skip=skip)
    if not names:
        print(f"No {source_suffix} files found in {directory}")
        return

    converted = skipped = errors = 0
    for name in names:
        source = os.path.join(directory, name)
        target = _target_path(source, None, target_suffix)
        if not force and is_fresh(source, target):
            print(f"[skip] {name}: up to date")
            skipped += 1
            continue
        try:
            result = convert(source)
        except Exception as e:
            print(f"[fail] {name}: {e}", file=sys.stderr)
            errors += 1
            continue
        write(target, result)
        print(f"[done] {name} → {os.path.basename(target)}")
        converted += 1

    print(f"Converted {converted}, skipped {skipped}, errors {errors}")
    if errors:
        raise SystemExit(1)


def cmd_to_yaml(args):
    """Convert .poem source to YAML."""
    if args.all:
        _convert_all(args.dir, ".poem", ".yaml", _poem_to_data, write_artifact, force=args.force)
        return
    if not args.file:
        print("Error: 'to-yaml' requires <file> or --all", file=sys.stderr)
        raise SystemExit(1)
    _convert_one(args, ".yaml", _poem_to_data, write_artifact)


def cmd_to_poem(args):
    """Convert YAML back to .poem source."""
    if args.all:
        _convert_all(args.dir, ".yaml", ".poem", _yaml_to_poem_text, _write_text,
                     force=args.force, skip=SKIP_YAML_FILES)
        return
    if not args.file:
        print("Error: 'to-poem' requires <file> or --all", file=sys.stderr)
        raise SystemExit(1)
    _convert_one(args, ".poem", _yaml_to_poem_text, _write_text)


def cmd_build(args):
    """Render stored poems to HTML."""
    from poem_builder.render import build_site

    _require_dir(args.poems_dir)
    report = build_site(args.poems_dir, args.public_dir)

    for name in report.built:
        print(f"[done] {name}")
    for name in report.skipped:
        print(f"[skip] {name}")
    for name, message in report.errors:
        print(f"[fail] {name}: {message}", file=sys.stderr)

    print(f"Built {len(report.built)}, skipped {len(report.skipped)}, errors {len(report.errors)}")
    print(f"Output: {args.public_dir}")
    if not report.ok:
        raise SystemExit(1)


def cmd_check(args):
    """Parse a .poem file and print a summary."""
    _require_file(args.file)
    try:
        parser = PoemParser(read_poem_source(args.file))
        doc = parser.parse()
    except (PoemSyntaxError, ValueError, OSError) as e:
        print(f"Error: {args.file}: {e}", file=sys.stderr)
        raise SystemExit(1)

    segments = sum(len(v.segments) for v in doc.versions)
    print(f"Title:    {doc.title}")
    print(f"Author:   {doc.author}")
    print(f"Date:     {doc.date}")
    print(f"Slug:     {doc.slug}")
    file_slug = slug_from_path(args.file)
    if file_slug != doc.slug:
        print(f"Note:     file name slug '{file_slug}' differs from title slug")
    print(f"Versions: {len(doc.versions)} ({segments} segments)")
    if doc.audio:
        print(f"Audio:    {', '.join(doc.audio.platforms)}")
    if doc.postscript:
        refs = sum(1 for note in doc.postscript if note.ref)
        print(f"Notes:    {len(doc.postscript)} ({refs} references)")
    if doc.analysis:
        parts = [name for name in ("synopsis", "full") if getattr(doc.analysis, name)]
        print(f"Analysis: {', '.join(parts)}")
    if parser.warnings:
        print(f"Warnings: {len(parser.warnings)}")
        for message in parser.warnings:
            print(f"  {message}")


def main():
    """CLI entry point."""
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    parser = argparse.ArgumentParser(
        prog="poem-builder",
        description="Poem Builder: convert .poem sources and build the poetry site",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # to-yaml
    to_yaml = subparsers.add_parser("to-yaml", help="Convert .poem files to YAML")
    to_yaml.add_argument("file", nargs="?", help="Path to the .poem file")
    to_yaml.add_argument("output", nargs="?", help="Output path (default: alongside the source)")
    to_yaml.add_argument("--all", action="store_true", help="Convert every .poem file in --dir")
    to_yaml.add_argument("--dir", default=POEMS_DIR, help=f"Source directory (default: {POEMS_DIR})")
    to_yaml.add_argument("--force", action="store_true", help="Convert even when output is up to date")
    to_yaml.set_defaults(func=cmd_to_yaml)

    # to-poem
    to_poem = subparsers.add_parser("to-poem", help="Convert YAML files back to .poem")
    to_poem.add_argument("file", nargs="?", help="Path to the .yaml file")
    to_poem.add_argument("output", nargs="?", help="Output path (default: alongside the source)")
    to_poem.add_argument("--all", action="store_true", help="Convert every .yaml file in --dir")
    to_poem.add_argument("--dir", default=POEMS_DIR, help=f"Source directory (default: {POEMS_DIR})")
    to_poem.add_argument("--force", action="store_true", help="Convert even when output is up to date")
    to_poem.set_defaults(func=cmd_to_poem)

    # build
    build = subparsers.add_parser("build", help="Render YAML poems to HTML")
    build.add_argument("--poems-dir", default=POEMS_DIR, help=f"YAML directory (default: {POEMS_DIR})")
    build.add_argument("--public-dir", default=PUBLIC_DIR, help=f"Output directory (default: {PUBLIC_DIR})")
    build.set_defaults(func=cmd_build)

    # check
    check = subparsers.add_parser("check", help="Parse a .poem file and show a summary")
    check.add_argument("file", help="Path to the .poem file")
    check.set_defaults(func=cmd_check)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    args.func(args)
