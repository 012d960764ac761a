"""Tests for the post authorization gate (no app, no database)."""
from types import SimpleNamespace

import pytest

from app.pressroom.auth import Identity
from app.pressroom.policy import (
    DELETE,
    DENY_NOT_OWNER,
    DENY_UNAUTHENTICATED,
    READ,
    UPDATE,
    authorize,
    is_owner,
)

ALICE = Identity(user_id=1, email="alice@example.com", name="Alice")
BOB = Identity(user_id=2, email="bob@example.com", name="Bob")


def _post(author_id=1):
    return SimpleNamespace(id="p1", author_id=author_id)


@pytest.mark.parametrize("identity", [None, ALICE, BOB])
def test_read_always_allowed(identity):
    d = authorize(identity, _post(), READ)
    assert d.allowed is True
    assert d.reason is None


@pytest.mark.parametrize("operation", [UPDATE, DELETE])
def test_owner_may_mutate(operation):
    assert authorize(ALICE, _post(author_id=1), operation)


@pytest.mark.parametrize("operation", [UPDATE, DELETE])
def test_non_owner_denied_as_not_owner(operation):
    d = authorize(BOB, _post(author_id=1), operation)
    assert not d
    assert d.reason == DENY_NOT_OWNER


@pytest.mark.parametrize("operation", [UPDATE, DELETE])
def test_anonymous_denied_as_unauthenticated(operation):
    d = authorize(None, _post(), operation)
    assert not d
    assert d.reason == DENY_UNAUTHENTICATED


def test_owner_match_uses_ids_not_email_spelling():
    # Same user id, differently cased email: still the owner.
    shouting_alice = Identity(user_id=1, email="ALICE@EXAMPLE.COM")
    assert is_owner(shouting_alice, _post(author_id=1))
    # Different id that happens to carry the owner's email: not the owner.
    impostor = Identity(user_id=99, email="alice@example.com")
    assert not is_owner(impostor, _post(author_id=1))


def test_unknown_operation_rejected():
    with pytest.raises(ValueError):
        authorize(ALICE, _post(), "publish")
