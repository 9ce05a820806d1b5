"""Query string parsing for the consultation search index.

Supports a subset of the Lucene query-string syntax:

- whitespace-separated terms are ANDed; ``OR`` between two terms joins them
  into one clause, ``AND`` is accepted and ignored
- ``"quoted phrases"`` are a single term
- ``field:value`` restricts a term to one document field; ``a.b:value``
  reaches into nested objects
- ``-term`` or ``NOT term`` negates a term
- ``*`` and ``?`` are wildcards; a bare ``*`` matches every document
- backslashes are ordinary characters

Matching is case-insensitive substring matching, so the parser lowers every
term and turns it into a SQL LIKE pattern.
"""

import logging
import re
import shlex
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"

_IDENTIFIER = r"[A-Za-z_][A-Za-z0-9_]*"

# ``field:value`` where field may be a dotted path into nested objects
_FIELD_PATTERN = re.compile(rf"^({_IDENTIFIER}(?:\.{_IDENTIFIER})*):(.+)$")


@dataclass(frozen=True)
class SearchTerm:
    """Single query term.

    Attributes:
        text: Lowercased term text, wildcards still as ``*``/``?``
        field: Document field the term is restricted to (None for any field)
        negated: True when documents matching the term are excluded
    """

    text: str
    field: Optional[str] = None
    negated: bool = False

    @property
    def matches_all(self) -> bool:
        return self.field is None and self.text.strip("*") == ""

    def like_pattern(self) -> str:
        """Translate the term into a LIKE pattern matching it anywhere."""
        escaped = []
        for char in self.text:
            if char in ("%", "_", LIKE_ESCAPE):
                escaped.append(LIKE_ESCAPE + char)
            elif char == "*":
                escaped.append("%")
            elif char == "?":
                escaped.append("_")
            else:
                escaped.append(char)
        return f"%{''.join(escaped)}%"


@dataclass(frozen=True)
class ParsedQuery:
    """Conjunction of clauses; each clause is a disjunction of terms."""

    clauses: tuple[tuple[SearchTerm, ...], ...]

    @property
    def matches_all(self) -> bool:
        return all(any(term.matches_all and not term.negated for term in clause) for clause in self.clauses)


def _tokenize(query: str) -> list[str]:
    # Quotes group words; backslashes are kept as literal characters
    lexer = shlex.shlex(query, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = ""
    lexer.escape = ""
    try:
        return list(lexer)
    except ValueError:
        # Unbalanced quotes: fall back to plain whitespace splitting
        logger.debug(f"Unbalanced quotes in search query, splitting on whitespace: {query!r}")
        return query.replace('"', " ").split()


def _normalize(text: str) -> str:
    return " ".join(text.split()).lower()


def _to_term(token: str, negated: bool) -> Optional[SearchTerm]:
    if token.startswith("-") and len(token) > 1:
        negated = not negated
        token = token[1:]

    match = _FIELD_PATTERN.match(token)
    if match:
        return SearchTerm(text=_normalize(match.group(2)), field=match.group(1), negated=negated)

    text = _normalize(token)
    if not text:
        return None
    return SearchTerm(text=text, negated=negated)


def parse_query(query: str) -> ParsedQuery:
    """Parse a query string into AND-ed clauses of OR-ed terms.

    Parameters:
        query: Raw query string from the client

    Returns:
        ParsedQuery (an empty query yields no clauses and matches everything)
    """
    clauses: list[list[SearchTerm]] = []
    pending_or = False
    pending_not = False

    for token in _tokenize(query):
        if token == "AND":
            continue
        if token == "OR":
            pending_or = bool(clauses)
            continue
        if token == "NOT":
            pending_not = True
            continue

        term = _to_term(token, negated=pending_not)
        pending_not = False
        if term is None:
            continue

        if pending_or:
            clauses[-1].append(term)
            pending_or = False
        else:
            clauses.append([term])

    return ParsedQuery(clauses=tuple(tuple(clause) for clause in clauses))
