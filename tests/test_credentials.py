import pytest

import credentials
from errors import AuthFailure, Conflict
from models import User


def test_register_then_authenticate(db):
    user = credentials.register(db, "alice", "alice@example.com", "Secret123!")

    assert user.id is not None
    assert user.password_hash != "Secret123!"
    assert credentials.authenticate(db, "alice", "Secret123!").id == user.id


def test_duplicate_username_conflicts_regardless_of_email(db):
    credentials.register(db, "alice", "alice@example.com", "Secret123!")

    with pytest.raises(Conflict) as exc:
        credentials.register(db, "alice", "other@example.com", "Secret123!")

    assert [m.field for m in exc.value.messages] == ["username"]
    assert db.query(User).count() == 1


def test_duplicate_email_conflicts(db):
    credentials.register(db, "alice", "alice@example.com", "Secret123!")

    with pytest.raises(Conflict) as exc:
        credentials.register(db, "alicia", "alice@example.com", "Secret123!")

    assert [m.field for m in exc.value.messages] == ["email"]


def test_both_clashes_reported_together(db):
    credentials.register(db, "alice", "alice@example.com", "Secret123!")

    with pytest.raises(Conflict) as exc:
        credentials.register(db, "alice", "alice@example.com", "Secret123!")

    assert {m.field for m in exc.value.messages} == {"username", "email"}


def test_auth_failures_are_indistinguishable(db):
    credentials.register(db, "alice", "alice@example.com", "Secret123!")

    with pytest.raises(AuthFailure) as unknown:
        credentials.authenticate(db, "nobody", "Secret123!")
    with pytest.raises(AuthFailure) as wrong:
        credentials.authenticate(db, "alice", "Wrong123!")

    assert unknown.value.to_dict() == wrong.value.to_dict()
    assert str(unknown.value) == str(wrong.value) == AuthFailure.MESSAGE
