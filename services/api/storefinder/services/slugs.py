"""Slug assignment for stores.

Slug:
- Base slug from the store name: ASCII-folded, lowercased, hyphen-separated
- Collisions counted against existing slugs matching ^(base)(-[0-9]+)?$
- No match -> base; N matches -> base-(N+1)

Counting alone races under concurrent creates; the catalog service
serializes per base slug and storage holds a unique constraint on slug.
"""

import re
import unicodedata
from collections.abc import Awaitable, Callable, Iterable, Sequence

from storefinder.services.errors import ValidationError

SlugLookup = Callable[[str], Awaitable[Sequence[str]]]

# Path segments under /v1/stores that would shadow a store slug
RESERVED_SLUGS = frozenset({"near", "page", "id", "hearted"})


def slugify(name: str) -> str:
    """Normalize a display name into a URL-safe base slug.

    - Fold accents to ASCII
    - Lowercase
    - Drop apostrophes
    - Replace every other run of non-alphanumerics with one hyphen

    Example:
        >>> slugify("Café de Flore")
        "cafe-de-flore"
    """
    if not name:
        return ""

    result = unicodedata.normalize("NFKD", name)
    result = result.encode("ascii", "ignore").decode("ascii")
    result = result.lower().strip()
    result = re.sub(r"['`]", "", result)
    result = re.sub(r"[^a-z0-9]+", "-", result)
    return result.strip("-")


def slug_pattern(base: str) -> re.Pattern[str]:
    """Pattern matching the base slug and its numbered variants."""
    return re.compile(rf"^({re.escape(base)})(-[0-9]+)?$", re.IGNORECASE)


def next_slug(base: str, existing: Iterable[str]) -> str:
    """Pick the slug for a new holder of `base`.

    Args:
        base: Base slug.
        existing: Slugs already in the catalog (may include non-matching ones).

    Returns:
        `base` when free, else `base-(N+1)` for N matching slugs, bumped
        further if that suffix is itself taken (e.g. after deletions).
        A reserved base counts as already taken.
    """
    pattern = slug_pattern(base)
    taken = {s.lower() for s in existing if pattern.match(s)}
    if base in RESERVED_SLUGS:
        taken.add(base)
    if not taken:
        return base

    n = len(taken) + 1
    candidate = f"{base}-{n}"
    while candidate in taken:
        n += 1
        candidate = f"{base}-{n}"
    return candidate


def base_slug(name: str) -> str:
    """Base slug for a store name.

    Raises:
        ValidationError: If the name has no slug-able characters.
    """
    base = slugify(name)
    if not base:
        raise ValidationError(
            "Store name must contain letters or digits",
            detail={"field": "name"},
        )
    return base


async def assign_slug(base: str, lookup: SlugLookup) -> str:
    """Resolve collisions for `base` (from `base_slug()`) via `lookup`.

    Args:
        base: Base slug.
        lookup: Returns existing slugs matching the base slug pattern.
    """
    existing = await lookup(base)
    return next_slug(base, existing)
