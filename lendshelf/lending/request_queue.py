"""
Pending-request queue embedded in a book record.

An insertion-ordered set of requester ids. It has no storage of its
own: callers load it from a book, mutate it, and write it back as part
of the book's compare-and-swap.
"""

from typing import Iterable, Iterator


class AlreadyPresent(Exception):
    """Requester is already queued."""


class NotPresent(Exception):
    """Requester is not queued."""


class RequestQueue:
    """Ordered set of pending requester ids."""

    def __init__(self, requester_ids: Iterable[str] = ()):
        self._ids: list[str] = []
        for requester_id in requester_ids:
            if requester_id not in self._ids:
                self._ids.append(requester_id)

    def add(self, requester_id: str) -> None:
        """
        Append a requester.

        Raises:
            AlreadyPresent: The requester is already queued
        """
        if requester_id in self._ids:
            raise AlreadyPresent(requester_id)
        self._ids.append(requester_id)

    def remove(self, requester_id: str) -> None:
        """
        Drop a requester.

        Raises:
            NotPresent: The requester is not queued
        """
        try:
            self._ids.remove(requester_id)
        except ValueError:
            raise NotPresent(requester_id) from None

    def contains(self, requester_id: str) -> bool:
        return requester_id in self._ids

    def clear(self) -> None:
        self._ids.clear()

    def to_list(self) -> list[str]:
        """Snapshot in insertion order."""
        return list(self._ids)

    def __contains__(self, requester_id: object) -> bool:
        return requester_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def __repr__(self) -> str:
        return f"RequestQueue({self._ids!r})"
