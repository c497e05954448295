"""
Unit tests for the Book Record Store.
"""

from dataclasses import replace

import pytest

from lendshelf.lending import state_machine
from lendshelf.storage.book_repository import VersionConflict


@pytest.fixture
def stored(book_repo):
    return book_repo.create(state_machine.new_book(
        book_id="b1", owner_id="owner", title="Beloved", author="Toni Morrison", genre="Fiction",
    ))


class TestBookRepository:

    def test_create_and_get(self, book_repo, stored):
        book = book_repo.get("b1")

        assert book.title == "Beloved"
        assert book.version == 1
        assert book.requests == []

    def test_get_missing(self, book_repo):
        assert book_repo.get("nope") is None

    def test_compare_and_swap_bumps_version(self, book_repo, stored):
        swapped = book_repo.compare_and_swap("b1", 1, replace(stored, requests=["r1"]))

        assert swapped.version == 2
        assert book_repo.get("b1").requests == ["r1"]
        assert book_repo.get("b1").version == 2

    def test_stale_compare_and_swap_conflicts(self, book_repo, stored):
        book_repo.compare_and_swap("b1", 1, replace(stored, requests=["r1"]))

        with pytest.raises(VersionConflict):
            book_repo.compare_and_swap("b1", 1, replace(stored, requests=["r2"]))

        assert book_repo.get("b1").requests == ["r1"]

    def test_compare_and_swap_missing_book(self, book_repo, stored):
        assert book_repo.compare_and_swap("nope", 1, stored) is None

    def test_delete_with_version(self, book_repo, stored):
        with pytest.raises(VersionConflict):
            book_repo.delete("b1", expected_version=7)

        assert book_repo.delete("b1", expected_version=1) is True
        assert book_repo.get("b1") is None
        assert book_repo.delete("b1") is False

    def test_listings(self, book_repo, stored):
        book_repo.create(state_machine.new_book(
            book_id="b2", owner_id="owner", title="Sula", author="Toni Morrison", genre="Fiction",
        ))
        lent = state_machine.approve(state_machine.request(stored, "r1"), "r1", stored.created_at)
        book_repo.compare_and_swap("b1", 1, lent)

        assert [b.id for b in book_repo.list_by_owner("owner")] == ["b1", "b2"]
        assert [b.id for b in book_repo.list_by_borrower("r1")] == ["b1"]
        assert [b.id for b in book_repo.list_available()] == ["b2"]
        assert len(book_repo.list_all()) == 2
