from __future__ import annotations

from models import UserLocationRecord
from services.blocking import identifier_set, is_blocked, is_blocked_between


def test_identifier_set_normalizes_and_drops_empty() -> None:
    ids = identifier_set(["  A@X.com ", "+1 206 555 0101", "", None, "   "])
    assert ids == frozenset({"a@x.com", "+12065550101"})


def test_requester_blocking_candidate() -> None:
    assert is_blocked(
        frozenset({"me@x.com"}),
        identifier_set(["A@x.com"]),
        frozenset({"a@x.com"}),
        frozenset(),
    )


def test_candidate_blocking_requester_phone() -> None:
    assert is_blocked(
        identifier_set(["me@x.com", "555 0101"]),
        frozenset(),
        frozenset({"a@x.com"}),
        identifier_set(["5550101"]),
    )


def test_block_is_symmetric() -> None:
    a = UserLocationRecord(
        user_id="a",
        contact_identifiers=identifier_set(["a@x.com"]),
        blocked_identifiers=identifier_set(["b@x.com"]),
    )
    b = UserLocationRecord(user_id="b", contact_identifiers=identifier_set(["b@x.com"]))
    assert is_blocked_between(a, b)
    assert is_blocked_between(b, a)


def test_empty_sets_never_match() -> None:
    assert not is_blocked(frozenset(), frozenset(), frozenset(), frozenset())
    assert not is_blocked(frozenset({"a@x.com"}), frozenset(), frozenset(), frozenset({"b@x.com"}))


def test_unrelated_blocks_do_not_match() -> None:
    assert not is_blocked(
        frozenset({"a@x.com"}),
        frozenset({"c@x.com"}),
        frozenset({"b@x.com"}),
        frozenset({"d@x.com"}),
    )
