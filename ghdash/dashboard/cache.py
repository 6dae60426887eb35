"""Rendered preview content keyed by (preview mode, PR id)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, Iterable, TypeVar

if TYPE_CHECKING:
    from .state import PreviewMode

T = TypeVar("T")


class PreviewCache(Generic[T]):
    """Keyed store of rendered previews.

    There is no capacity limit: entries only go away through ``prune`` and
    ``drop``, so the cache never outgrows the current list of PRs.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[PreviewMode, str], T] = {}

    def get(self, mode: PreviewMode, pr_id: str) -> T | None:
        return self._entries.get((mode, pr_id))

    def put(self, mode: PreviewMode, pr_id: str, content: T) -> None:
        self._entries[(mode, pr_id)] = content

    def has(self, mode: PreviewMode, pr_id: str) -> bool:
        return (mode, pr_id) in self._entries

    def prune(self, valid_ids: Iterable[str]) -> int:
        """Remove every entry whose id is not in ``valid_ids``.

        Returns:
            Number of entries removed
        """
        keep = set(valid_ids)
        stale = [key for key in self._entries if key[1] not in keep]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def drop(self, pr_id: str) -> None:
        """Remove every mode's entry for one PR."""
        for key in [k for k in self._entries if k[1] == pr_id]:
            del self._entries[key]

    def ids(self) -> set[str]:
        return {pr_id for _, pr_id in self._entries}

    def __len__(self) -> int:
        return len(self._entries)
