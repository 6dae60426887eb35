"""Parsing of ``owner`` / ``owner/name`` slugs."""

from dataclasses import dataclass


class InvalidSlugError(ValueError):
    """Raised when a slug is empty or has more than one separator."""


@dataclass(frozen=True)
class OwnerSlug:
    owner: str

    def __str__(self) -> str:
        return self.owner


@dataclass(frozen=True)
class RepoSlug:
    owner: str
    name: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


Slug = OwnerSlug | RepoSlug


def parse_slug(value: str) -> Slug:
    """Parse a slug into an OwnerSlug or RepoSlug.

    Args:
        value: ``"owner"`` or ``"owner/name"``

    Raises:
        InvalidSlugError: if a part is empty or there is more than one ``/``
    """
    parts = value.strip().split("/")
    if len(parts) > 2:
        raise InvalidSlugError(f"Invalid slug: {value!r} (expected owner or owner/name)")
    if any(not p for p in parts):
        raise InvalidSlugError(f"Invalid slug: {value!r} (empty owner or name)")
    if len(parts) == 1:
        return OwnerSlug(parts[0])
    return RepoSlug(parts[0], parts[1])


def parse_slugs(values: list[str]) -> list[Slug]:
    """Parse several slugs, failing on the first invalid one."""
    return [parse_slug(v) for v in values]
