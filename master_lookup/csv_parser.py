from __future__ import annotations


def parse_csv(text: str) -> list[list[str]]:
    """Split CSV text into rows of raw (untrimmed) fields.

    Quoted fields may contain commas, line breaks and doubled quotes (``""``).
    ``\\n``, ``\\r`` and ``\\r\\n`` all end a row; blank lines produce no row.
    Malformed input never raises: an unterminated quote simply runs to the end
    of the text and whatever was accumulated is flushed as the last row.
    """
    rows: list[list[str]] = []
    row: list[str] = []
    cur: list[str] = []
    in_quotes = False

    i = 0
    n = len(text or "")
    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""

        if ch == '"':
            if in_quotes and nxt == '"':
                cur.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
            i += 1
            continue

        if ch == "," and not in_quotes:
            row.append("".join(cur))
            cur = []
            i += 1
            continue

        if ch in ("\n", "\r") and not in_quotes:
            if cur or row:
                row.append("".join(cur))
                rows.append(row)
            row = []
            cur = []
            i += 2 if (ch == "\r" and nxt == "\n") else 1
            continue

        cur.append(ch)
        i += 1

    if cur or row:
        row.append("".join(cur))
        rows.append(row)
    return rows

