"""
Tests for the User model: list columns, expiration rules and reset-token fields.
"""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import text

from labsite.domain.models.types import deserialize_list, serialize_list
from labsite.domain.models.user import User, add_years


class TestListSerialization:
    def test_none_is_stored_as_empty_list(self):
        assert serialize_list(None) == "[]"

    def test_non_list_rejected(self):
        with pytest.raises(TypeError):
            serialize_list("python")

    def test_null_and_blank_read_as_empty(self):
        assert deserialize_list(None) == []
        assert deserialize_list("  ") == []

    def test_non_array_payload_rejected(self):
        with pytest.raises(ValueError):
            deserialize_list('{"a": 1}')

    def test_columns_come_back_as_lists(self, repo, make_user, db):
        user = make_user(
            "lists@lab.org",
            expertises=["NLP", "Graphs"],
            university_education=[{"degree": "PhD", "institution": "ENSI", "year": 2019}],
        )
        db.expire_all()
        loaded = repo.get_by_id(user.id)
        assert loaded.expertises == ["NLP", "Graphs"]
        assert loaded.research_interests == []
        assert loaded.university_education[0]["institution"] == "ENSI"

        stored = db.execute(text("SELECT expertises FROM users WHERE id = :id"), {"id": user.id}).scalar()
        assert stored == '["NLP", "Graphs"]'


class TestExpiration:
    def test_add_years_handles_leap_day(self):
        assert add_years(date(2024, 2, 29), 5) == date(2029, 2, 28)
        assert add_years(date(2024, 3, 1), 5) == date(2029, 3, 1)

    def test_expired_from_the_expiration_day(self):
        user = User(expiration_date=date(2026, 5, 10))
        assert not user.is_expired(date(2026, 5, 9))
        assert user.is_expired(date(2026, 5, 10))
        assert not User(expiration_date=None).is_expired(date(2026, 5, 10))

    def test_renew_only_when_lapsed(self):
        today = date(2026, 5, 10)
        current = User(expiration_date=date(2027, 1, 1))
        assert not current.renew_expiration_if_lapsed(today)
        assert current.expiration_date == date(2027, 1, 1)

        lapsed = User(expiration_date=today)
        assert lapsed.renew_expiration_if_lapsed(today)
        assert lapsed.expiration_date == date(2031, 5, 10)

        unset = User(expiration_date=None)
        assert unset.renew_expiration_if_lapsed(today)
        assert unset.expiration_date == date(2031, 5, 10)


class TestResetToken:
    def test_fields_set_and_cleared_together(self):
        user = User()
        expires = datetime(2026, 5, 10, 12, tzinfo=timezone.utc)
        user.set_reset_token("a" * 64, expires)
        assert (user.reset_password_token, user.reset_password_expire) == ("a" * 64, expires)
        user.clear_reset_token()
        assert user.reset_password_token is None
        assert user.reset_password_expire is None

    def test_password_hash_never_equals_plaintext(self):
        user = User()
        user.set_password("plaintext")
        assert user.password_hash != "plaintext"
        assert user.check_password("plaintext")
        assert not user.check_password("other")
