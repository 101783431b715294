"""Low-level CSV tokenizing shared by every parser.

parse_line() splits one logical row into fields. read_rows() turns a whole
document into logical rows, joining physical lines while a quoted field is
still open so values with embedded newlines reach parse_line() whole.

A double quote opens a quoted field only at the start of a field. Anywhere
else it is a literal character, so an inch mark in `12" pizza` stays in the
value and never swallows the lines after it.
"""

from dataclasses import dataclass, field

QUOTE = '"'
DELIMITER = ","

Row = tuple[int, list[str]]


@dataclass
class RowSplit:
    """Logical rows of a document plus problems found while splitting.

    Attributes:
        rows: (row_number, fields) pairs; row numbers are 1-based physical lines.
        issues: (row_number, message) pairs for rows that could not be
            split cleanly. Those rows are still returned.
    """

    rows: list[Row] = field(default_factory=list)
    issues: list[tuple[int, str]] = field(default_factory=list)


def _scan(raw: str) -> tuple[list[str], bool]:
    """Tokenize text and report whether a quoted field is still open at the end."""
    fields: list[str] = []
    current: list[str] = []
    inside_quotes = False
    field_start = True
    i = 0
    length = len(raw)

    while i < length:
        char = raw[i]
        if inside_quotes:
            if char == QUOTE:
                if i + 1 < length and raw[i + 1] == QUOTE:
                    current.append(QUOTE)
                    i += 1
                else:
                    inside_quotes = False
            else:
                current.append(char)
        elif char == DELIMITER:
            fields.append("".join(current))
            current = []
            field_start = True
            i += 1
            continue
        elif char == QUOTE and field_start:
            inside_quotes = True
        else:
            current.append(char)
        field_start = False
        i += 1

    fields.append("".join(current))
    return fields, inside_quotes


def parse_line(raw: str) -> list[str]:
    """Split one CSV row into fields.

    A quote at the start of a field opens a quoted section. Inside it a
    doubled quote emits one literal quote, a single quote closes it, and
    commas do not end the field. Quotes elsewhere are kept as text. The
    trailing field is always emitted, so a row ending in a comma yields a
    final empty field. Fields are returned unstripped.

    Args:
        raw: One logical CSV row, without its line terminator.

    Returns:
        Ordered list of field values.
    """
    fields, _ = _scan(raw)
    return fields


def read_rows(content: str) -> RowSplit:
    """Split CSV text into logical rows of fields.

    Blank rows are dropped. Row numbers are the 1-based physical line number
    where each row starts, matching what a user sees in an editor. A quoted
    field that is never closed is reported as an issue; its line is then
    read on its own and splitting resumes on the following line.

    Args:
        content: Whole CSV document.

    Returns:
        RowSplit with the rows and any splitting issues.
    """
    lines = content.splitlines()
    result = RowSplit()
    index = 0

    while index < len(lines):
        start = index
        joined = lines[index]
        fields, open_quote = _scan(joined)
        while open_quote and index + 1 < len(lines):
            index += 1
            joined = f"{joined}\n{lines[index]}"
            fields, open_quote = _scan(joined)

        if open_quote:
            result.issues.append((start + 1, "Unterminated quoted field"))
            index = start
            joined = lines[start]
            fields, _ = _scan(joined)

        if joined.strip():
            result.rows.append((start + 1, fields))
        index += 1

    return result


def split_rows(content: str) -> list[Row]:
    """Return the logical rows of a document, ignoring splitting issues."""
    return read_rows(content).rows


def read_header(content: str) -> list[str]:
    """Return the stripped header fields of a CSV document.

    Args:
        content: Whole CSV document.

    Returns:
        Header fields, or an empty list for an empty document.
    """
    rows = split_rows(content)
    if not rows:
        return []
    return [value.strip() for value in rows[0][1]]
