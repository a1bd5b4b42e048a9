"""
SQL Statement Splitter

Splits a raw SQL script into executable statements. Semicolons inside
quoted strings, line comments and dollar-quoted blocks ($$ ... $$ or
$tag$ ... $tag$, as used by PostgreSQL function and trigger bodies) do not
terminate a statement.
"""
import logging
from typing import Iterator, List, Optional

logger = logging.getLogger("dbtools.sql")

QUOTE_CHARS = ("'", '"')


def _is_identifier_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def _read_dollar_tag(sql: str, start: int) -> Optional[str]:
    """
    Return the dollar-quote tag starting at ``sql[start]`` ("$$" or
    "$name$"), or None if the dollar sign does not open a tag (e.g. "$1").
    """
    end = start + 1
    while end < len(sql) and (sql[end].isalnum() or sql[end] == "_"):
        end += 1
    if end >= len(sql) or sql[end] != "$":
        return None
    tag = sql[start:end + 1]
    # "$1$" is not a tag: tags cannot start with a digit
    if len(tag) > 2 and tag[1].isdigit():
        return None
    return tag


def split_sql_statements(sql: str) -> Iterator[str]:
    """
    Yield trimmed statements from ``sql`` in order.

    Each statement keeps its terminating semicolon. Text after the last
    semicolon is yielded as a final statement. Fragments made only of
    comments and whitespace are dropped, as is a bare ";".
    """
    current: List[str] = []
    has_code = False
    in_comment = False
    quote_char: Optional[str] = None
    dollar_tag: Optional[str] = None

    i = 0
    length = len(sql)
    while i < length:
        ch = sql[i]
        nxt = sql[i + 1] if i + 1 < length else ""

        if quote_char is None and not in_comment and ch == "$":
            # "$" inside an identifier such as price$usd never opens a tag
            opens = dollar_tag is None and not (i and _is_identifier_char(sql[i - 1]))
            tag = _read_dollar_tag(sql, i) if opens or dollar_tag is not None else None
            if tag is not None and (dollar_tag is None or tag == dollar_tag):
                dollar_tag = None if dollar_tag else tag
                current.append(tag)
                has_code = True
                i += len(tag)
                continue

        if dollar_tag is not None:
            current.append(ch)
            i += 1
            continue

        if in_comment:
            current.append(ch)
            if ch == "\n":
                in_comment = False
            i += 1
            continue

        if quote_char is not None:
            if ch == quote_char:
                if nxt == quote_char:
                    # doubled delimiter is an escaped quote
                    current.append(ch + nxt)
                    i += 2
                    continue
                quote_char = None
            current.append(ch)
            i += 1
            continue

        if ch == "-" and nxt == "-":
            in_comment = True
            current.append("--")
            i += 2
            continue

        if ch in QUOTE_CHARS:
            quote_char = ch
            has_code = True
            current.append(ch)
            i += 1
            continue

        current.append(ch)
        i += 1
        if ch == ";":
            statement = "".join(current).strip()
            if has_code:
                yield statement
            current = []
            has_code = False
        elif not ch.isspace():
            has_code = True

    if has_code:
        if dollar_tag is not None or quote_char is not None:
            logger.warning("SQL script ended inside an unterminated quoted block")
        yield "".join(current).strip()

