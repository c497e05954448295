"""
Unit tests for the points ledger.
"""

import pytest

from lendshelf.lending.ledger import PointsLedger, PointsDelta, LENDER_AWARD
from lendshelf.lending.errors import InvalidInputError, UserNotFoundError


@pytest.fixture
def ledger(user_repo):
    user_repo.create("u1", "Ada")
    return PointsLedger(user_repo)


class TestPointsLedger:

    def test_apply_delta_increments_counters(self, ledger, user_repo):
        ledger.apply_delta("u1", PointsDelta(points=2))
        ledger.apply_delta("u1", LENDER_AWARD)

        user = user_repo.get("u1")
        assert user.points == 7
        assert user.books_shared == 1
        assert user.books_borrowed == 0

    def test_unknown_user(self, ledger):
        with pytest.raises(UserNotFoundError) as exc_info:
            ledger.apply_delta("ghost", PointsDelta(points=1))

        assert exc_info.value.code == "USER_NOT_FOUND"

    def test_empty_delta_is_noop(self, ledger, user_repo):
        ledger.apply_delta("ghost", PointsDelta())

        assert user_repo.get("u1").points == 0

    def test_negative_delta_rejected(self):
        with pytest.raises(InvalidInputError):
            PointsDelta(points=-1)

    def test_record_failure(self, ledger, user_repo):
        ledger.record_failure(
            user_id="ghost",
            event="upload",
            delta=PointsDelta(points=1),
            reason="User not found",
            book_id="b1",
        )

        failures = user_repo.list_ledger_failures()
        assert len(failures) == 1
        assert failures[0].user_id == "ghost"
        assert failures[0].event == "upload"
        assert failures[0].delta == {"points": 1, "books_shared": 0, "books_borrowed": 0}
        assert failures[0].book_id == "b1"
