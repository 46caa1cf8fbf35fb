"""Permissive CSV parsing for spreadsheet exports.

Only the restricted dialect produced by a spreadsheet CSV export is
supported: one record per physical line, comma separated, fields optionally
wrapped in double quotes with ``""`` as an escaped quote. Parsing never
fails; unterminated quotes simply run to the end of the line.
"""

from __future__ import annotations

from typing import List

BOM = "\ufeff"


def parse_line(line: str) -> List[str]:
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    i = 0
    n = len(line)
    while i < n:
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current).strip())
    return fields


def parse_csv(text: str) -> List[List[str]]:
    """Split ``text`` into rows of trimmed fields.

    Blank lines are skipped, and so is any row whose fields are all empty.
    A leading byte order mark is dropped.
    """
    if text.startswith(BOM):
        text = text[1:]
    rows: List[List[str]] = []
    for line in text.split("\n"):
        if line.strip() == "":
            continue
        row = parse_line(line)
        if any(cell != "" for cell in row):
            rows.append(row)
    return rows
