"""Tracked-source identifier utilities.

Tracked sources are GitHub identifiers in ``owner/name`` format. They are not
filesystem paths, even though they use ``/`` as a separator, so they should be
parsed using these helpers rather than ``pathlib``. Beyond the shape check the
sync engine treats them as opaque keys: case is preserved.
"""

from __future__ import annotations

import typing as typ

from runwatch.errors import ConfigurationError

if typ.TYPE_CHECKING:
    import collections.abc as cabc


def parse_repo_slug(slug: str) -> tuple[str, str]:
    """Parse a repository slug into owner and name.

    Parameters
    ----------
    slug:
        Repository slug in ``owner/name`` format.

    Returns
    -------
    tuple[str, str]
        ``(owner, name)``.

    Raises
    ------
    ValueError
        If the slug is not in ``owner/name`` format or contains whitespace or
        non-printable characters.

    Examples
    --------
    >>> parse_repo_slug("octo/reef")
    ('octo', 'reef')

    """
    if slug.count("/") != 1:
        msg = f"Invalid repository slug: expected 'owner/name', got {slug!r}"
        raise ValueError(msg)

    owner, name = slug.split("/")
    if not owner or not name:
        msg = f"Invalid repository slug: expected 'owner/name', got {slug!r}"
        raise ValueError(msg)
    if any(ch.isspace() or not ch.isprintable() for ch in slug):
        msg = f"Invalid repository slug: unexpected character in {slug!r}"
        raise ValueError(msg)

    return owner, name


def normalise_repo_slugs(raw: cabc.Iterable[str]) -> tuple[str, ...]:
    """Trim, validate and de-duplicate slugs, preserving first-seen order.

    Parameters
    ----------
    raw:
        Slugs as supplied by configuration; blanks are dropped.

    Returns
    -------
    tuple[str, ...]
        Unique, trimmed slugs.

    Raises
    ------
    ConfigurationError
        If any non-blank entry is not a valid ``owner/name`` slug.

    Examples
    --------
    >>> normalise_repo_slugs([" octo/reef", "", "octo/reef", "octo/kelp "])
    ('octo/reef', 'octo/kelp')

    """
    seen: dict[str, None] = {}
    for slug in raw:
        cleaned = slug.strip()
        if not cleaned:
            continue
        try:
            parse_repo_slug(cleaned)
        except ValueError as exc:
            raise ConfigurationError.invalid_source(cleaned) from exc
        seen.setdefault(cleaned, None)
    return tuple(seen)


def split_repo_slugs(value: str) -> tuple[str, ...]:
    """Split a comma-separated slug list and normalise it.

    >>> split_repo_slugs("octo/reef, octo/kelp,,octo/reef")
    ('octo/reef', 'octo/kelp')

    """
    return normalise_repo_slugs(value.split(","))
