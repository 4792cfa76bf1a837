"""Weighted term matching over store name and description.

Terms are OR-ed: a store matches when any query term appears in its name
or description. Relevance per term occurrence:
- name: weight A (1.0)
- description: weight B (0.4)

Postgres applies the same weights via setweight()/ts_rank; the memory
store uses `relevance()` directly.
"""

from collections import Counter
from collections.abc import Iterable, Sequence
import re
import unicodedata

from storefinder.schemas import StoreRecord

NAME_WEIGHT = 1.0
DESCRIPTION_WEIGHT = 0.4

# Letters and digits in any script
_TOKEN_RE = re.compile(r"[^\W_]+")

# Matches nothing useful in a store directory
STOP_WORDS = frozenset(
    {"a", "an", "and", "at", "by", "for", "in", "is", "of", "on", "or", "the", "to", "with"}
)


def fold_accents(text: str) -> str:
    """Strip diacritics (café -> cafe), keeping letters of every script.

    Postgres applies the same folding with unaccent() on both the indexed
    document and the query.
    """
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return unicodedata.normalize("NFC", stripped)


def tokenize(text: str | None) -> list[str]:
    """Split text into lowercase, accent-folded terms, skipping stop words."""
    if not text:
        return []
    return [t for t in _TOKEN_RE.findall(fold_accents(text).lower()) if t not in STOP_WORDS]


def query_terms(query: str | None) -> list[str]:
    """Distinct search terms of a query, in order of appearance."""
    return list(dict.fromkeys(tokenize(query)))


def to_tsquery_text(terms: Sequence[str]) -> str:
    """OR-ed tsquery source for Postgres (terms are letters and digits only)."""
    return " | ".join(terms)


def relevance(terms: Iterable[str], name: str | None, description: str | None) -> float:
    """Weighted count of term occurrences in name and description."""
    name_tokens = Counter(tokenize(name))
    description_tokens = Counter(tokenize(description))
    return sum(
        NAME_WEIGHT * name_tokens[term] + DESCRIPTION_WEIGHT * description_tokens[term]
        for term in terms
    )


def rank_by_text(
    records: Iterable[StoreRecord],
    terms: Sequence[str],
    size: int,
) -> list[StoreRecord]:
    """Best matching records: score DESC, store id ASC, at most `size`."""
    scored = [(relevance(terms, r.name, r.description), r) for r in records]
    matches = [(score, r) for score, r in scored if score > 0]
    matches.sort(key=lambda item: (-item[0], item[1].id))
    return [r for _, r in matches[:size]]
