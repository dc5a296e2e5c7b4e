"""Comment stripping and variable definition/expansion for .poem sources."""

from poem_builder.constants import (
    COMMENT_OPEN,
    COMMENT_CLOSE,
    LITERAL_OPEN,
    LITERAL_CLOSE,
    SINGLE_VAR_RE,
    MULTI_VAR_OPEN_RE,
    MULTI_VAR_CLOSE_RE,
    VAR_REF_RE,
    STANDALONE_VAR_RE,
)


def strip_comments(lines: list[str]) -> list[str]:
    """Drop every <<# ... #>> region, delimiter lines included.

    An opener without a closer consumes the rest of the input.
    """
    kept = []
    in_comment = False
    for line in lines:
        stripped = line.lstrip()
        if stripped.startswith(COMMENT_OPEN):
            in_comment = True
            continue
        if stripped.startswith(COMMENT_CLOSE):
            in_comment = False
            continue
        if not in_comment:
            kept.append(line)
    return kept


class VariableTable:
    """Variables defined in one document.

    Values are either a string (single-line definition) or a list of lines
    (multi-line definition). Names referenced but never defined are collected
    in ``undefined`` in first-seen order.
    """

    def __init__(self):
        self.values: dict[str, str | list[str]] = {}
        self.undefined: list[str] = []

    def __contains__(self, name: str) -> bool:
        return name in self.values

    def define(self, name: str, value: str | list[str]) -> None:
        self.values[name] = value

    def get(self, name: str):
        return self.values.get(name)

    def is_multiline(self, name: str) -> bool:
        return isinstance(self.values.get(name), list)

    def mark_undefined(self, name: str) -> None:
        if name not in self.undefined:
            self.undefined.append(name)

    def substitute(self, text: str) -> str:
        """Replace every ${name} in text; undefined names stay literal."""
        def replace(match):
            name = match.group(1)
            if name not in self.values:
                self.mark_undefined(name)
                return match.group(0)
            value = self.values[name]
            if isinstance(value, list):
                return "\n".join(value)
            return value

        return VAR_REF_RE.sub(replace, text)

    def resolve(self) -> None:
        """Substitute references inside definitions, top to bottom, once.

        A value referring to a variable whose own definition comes later sees
        that variable before its references were resolved.
        """
        for name, value in list(self.values.items()):
            if isinstance(value, list):
                self.values[name] = [self.substitute(line) for line in value]
            else:
                self.values[name] = self.substitute(value)


def extract_variables(lines: list[str], table: VariableTable | None = None) -> tuple[list[str], VariableTable]:
    """Pull ={name}=value and ={name}<<= ... =>> definitions out of lines.

    Definitions inside <<< ... >>> literal blocks are left alone. Returns the
    remaining lines and the populated table.
    """
    if table is None:
        table = VariableTable()

    remaining = []
    in_literal = False
    i = 0
    while i < len(lines):
        line = lines[i]
        stripped = line.strip()

        if stripped == LITERAL_OPEN:
            in_literal = True
        elif stripped == LITERAL_CLOSE:
            in_literal = False
        elif not in_literal:
            single = SINGLE_VAR_RE.match(line)
            if single:
                table.define(single.group(1), single.group(2))
                i += 1
                continue

            multi = MULTI_VAR_OPEN_RE.match(line)
            if multi:
                captured = []
                i += 1
                while i < len(lines):
                    if MULTI_VAR_CLOSE_RE.match(lines[i]):
                        i += 1
                        break
                    captured.append(lines[i])
                    i += 1
                table.define(multi.group(1), captured)
                continue

        remaining.append(line)
        i += 1

    return remaining, table


def expand_references(lines: list[str], table: VariableTable) -> list[str]:
    """Expand lines that consist of a single ${name} reference.

    Multi-line variables are spliced in line by line; single-line variables
    are substituted in place. Other lines are returned untouched, their
    references are substituted later by the parser.
    """
    expanded = []
    for line in lines:
        match = STANDALONE_VAR_RE.match(line.strip())
        if not match:
            expanded.append(line)
            continue
        name = match.group(1)
        if name not in table:
            table.mark_undefined(name)
            expanded.append(line)
        elif table.is_multiline(name):
            expanded.extend(table.get(name))
        else:
            expanded.append(table.substitute(line))
    return expanded


def preprocess(lines: list[str]) -> tuple[list[str], VariableTable]:
    """Run comment stripping, variable extraction, resolution and expansion."""
    lines = strip_comments(lines)
    lines, table = extract_variables(lines)
    table.resolve()
    return expand_references(lines, table), table
