"""Unit tests for UserSyncEngine."""

import re
import threading

import pytest
from sqlmodel import Session

from src.pupfinance.core.errors import UsernameConflictError, ValidationError
from src.pupfinance.core.services.user import (
    UserSyncEngine,
    generate_username,
    normalize_local_part,
)
from src.pupfinance.entities.core.user import UserRepository, UserSyncProfile
from tests.fixtures.services import TickingClock


class TestUsernameGeneration:
    @pytest.mark.parametrize(
        "email, prefix",
        [
            ("a.b@example.com", "a_b"),
            ("John.Doe+tag@example.com", "john_doe_tag"),
            ("under_score99@example.com", "under_score99"),
            ("ünï@example.com", "_n_"),
        ],
    )
    def test_normalizes_local_part(self, email, prefix):
        assert normalize_local_part(email) == prefix

    def test_appends_random_suffix(self):
        username = generate_username("a.b@example.com")

        assert re.fullmatch(r"a_b_[a-z0-9]{8}", username)

    def test_same_local_part_yields_distinct_usernames(self):
        names = {generate_username(f"same@domain{i}.com") for i in range(50)}

        assert len(names) == 50


class TestUserSyncEngine:
    def test_first_sync_creates_user(self, sync_engine, user_repository):
        result = sync_engine.sync({"auth0Id": "p|1", "email": "a.b@example.com"})

        assert result.created is True
        user = user_repository.get(result.user_id)
        assert user is not None
        assert user.external_id == "p|1"
        assert user.username.startswith("a_b_")
        assert user.email_verified is True
        assert user.last_login is not None

    def test_external_id_alias_is_accepted(self, sync_engine, user_repository):
        result = sync_engine.sync({"externalId": "p|2", "email": "x@example.com"})

        assert user_repository.get(result.user_id).external_id == "p|2"

    def test_second_sync_refreshes_without_duplicating(
        self, sync_engine, user_repository
    ):
        first = sync_engine.sync({"auth0Id": "p|1", "email": "a.b@example.com"})
        before = user_repository.get(first.user_id)

        second = sync_engine.sync({"auth0Id": "p|1", "email": "a.b@example.com"})
        after = user_repository.get(second.user_id)

        assert second.created is False
        assert second.user_id == first.user_id
        assert user_repository.count() == 1
        assert after.username == before.username
        assert after.last_login > before.last_login

    def test_refresh_overwrites_provider_fields_only(self, sync_engine, user_repository):
        sync_engine.sync(
            {
                "auth0Id": "p|1",
                "email": "old@example.com",
                "givenName": "Old",
                "familyName": "Name",
            }
        )
        result = sync_engine.sync(
            {
                "auth0Id": "p|1",
                "email": "new@example.com",
                "givenName": "New",
                "profilePictureUrl": "https://cdn.example.com/me.png",
            }
        )

        user = user_repository.get(result.user_id)
        assert user.given_name == "New"
        assert user.family_name == "Name"
        assert user.profile_picture_url == "https://cdn.example.com/me.png"
        assert user.email == "old@example.com"

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "a@example.com"},
            {"auth0Id": "", "email": "a@example.com"},
            {"auth0Id": "   ", "email": "a@example.com"},
            {"auth0Id": "p|1", "email": "not-an-email"},
            {"auth0Id": "p|1"},
            {"auth0Id": "p|1", "email": "a@example.com", "profilePictureUrl": "nope"},
        ],
    )
    def test_invalid_payload_is_rejected(self, sync_engine, user_repository, payload):
        with pytest.raises(ValidationError) as exc_info:
            sync_engine.sync(payload)

        assert exc_info.value.errors
        assert user_repository.count() == 0

    def test_accepts_validated_profile(self, sync_engine):
        profile = UserSyncProfile(external_id="p|9", email="nine@example.com")

        assert sync_engine.sync(profile).created is True

    def test_username_collision_raises_conflict(self, user_repository, clock):
        engine = UserSyncEngine(
            user_repository, clock=clock, username_factory=lambda email: "taken_name"
        )
        engine.sync({"auth0Id": "p|1", "email": "one@example.com"})

        with pytest.raises(UsernameConflictError):
            engine.sync({"auth0Id": "p|2", "email": "two@example.com"})

        assert user_repository.count() == 1
        assert user_repository.get_by_external_id("p|2") is None


class TestConcurrentFirstLogin:
    def test_simultaneous_first_syncs_create_one_user(self, file_engine):
        payload = {"auth0Id": "p|race", "email": "race@example.com"}
        barrier = threading.Barrier(2)
        results = []
        errors = []

        def worker() -> None:
            with Session(file_engine, expire_on_commit=False) as session:
                engine = UserSyncEngine(UserRepository(session), clock=TickingClock())
                barrier.wait()
                try:
                    results.append(engine.sync(payload))
                except Exception as exc:  # surfaced through the assertion below
                    errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        assert len(results) == 2
        assert len({r.user_id for r in results}) == 1
        assert sorted(r.created for r in results) == [False, True]
        with Session(file_engine) as session:
            assert UserRepository(session).count() == 1
