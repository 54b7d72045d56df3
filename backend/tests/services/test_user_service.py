"""Tests for the user profile service."""
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import WriteFailureError
from factories import make_thread, make_user
from models import Community, User
from schemas.user import UserSearchQuery, UserUpdate
from services.user_service import fetch_user, fetch_users, update_user


def _profile(external_id: str = "user_alice", **overrides: str) -> UserUpdate:
    fields = {
        "external_id": external_id,
        "username": "Alice_W",
        "name": "Alice",
        "bio": "hello",
        "image": "https://img/alice.png",
        "path": "/onboarding",
    }
    fields.update(overrides)
    return UserUpdate(**fields)


class TestFetchUser:
    """Tests for fetch_user."""

    async def test__fetch_user__unknown_returns_none(self, db_session: AsyncSession) -> None:
        """Unknown external ids are reported as absent."""
        assert await fetch_user(db_session, "nobody") is None

    async def test__fetch_user__database_error_returns_none(
        self, db_session: AsyncSession,
    ) -> None:
        """Lookup failures are swallowed so callers can fall back to onboarding."""
        with patch.object(
            db_session,
            "execute",
            new_callable=AsyncMock,
            side_effect=OperationalError("SELECT", {}, Exception("timeout")),
        ):
            assert await fetch_user(db_session, "user_alice") is None

    async def test__fetch_user__expands_communities_and_threads(
        self, db_session: AsyncSession,
    ) -> None:
        """Communities and threads (with author summary) are included."""
        community = Community(
            external_id="org_1", username="pythonistas", name="Pythonistas", image="", bio=None,
        )
        db_session.add(community)
        alice = await make_user(
            db_session, "user_alice", name="Alice", image="a.png", communities=[community],
        )
        thread = await make_thread(db_session, alice, "my post")
        await db_session.commit()

        user = await fetch_user(db_session, "user_alice")

        assert user is not None
        assert user.internal_id == alice.id
        assert user.id == "user_alice"
        assert [c.username for c in user.communities] == ["pythonistas"]
        assert len(user.threads) == 1
        assert user.threads[0].id == str(thread.id)
        assert user.threads[0].parent_id is None
        assert user.threads[0].author.name == "Alice"
        assert user.threads[0].author.id == "user_alice"


class TestUpdateUser:
    """Tests for update_user (onboarding/profile save)."""

    async def test__update_user__creates_onboarded_user_with_lowercase_username(
        self, db_session: AsyncSession,
    ) -> None:
        """First save inserts the user, lowercases username and sets onboarded."""
        await update_user(db_session, _profile())

        user = await fetch_user(db_session, "user_alice")
        assert user is not None
        assert user.username == "alice_w"
        assert user.name == "Alice"
        assert user.onboarded is True

    async def test__update_user__twice_keeps_one_record(
        self, db_session: AsyncSession,
    ) -> None:
        """Saving twice updates in place and keeps onboarded true."""
        await update_user(db_session, _profile())
        await update_user(db_session, _profile(name="Alice W.", bio="updated"))

        count = (
            await db_session.execute(
                select(func.count()).select_from(User).where(User.external_id == "user_alice"),
            )
        ).scalar()
        assert count == 1

        user = await fetch_user(db_session, "user_alice")
        assert user is not None
        assert user.onboarded is True
        assert user.name == "Alice W."
        assert user.bio == "updated"

    async def test__update_user__flips_onboarded_on_existing_user(
        self, db_session: AsyncSession,
    ) -> None:
        """A user row created before onboarding becomes onboarded on save."""
        await make_user(db_session, "user_alice", onboarded=False)

        await update_user(db_session, _profile())

        user = await fetch_user(db_session, "user_alice")
        assert user is not None
        assert user.onboarded is True

    async def test__update_user__blank_username_rejected(self) -> None:
        """Usernames that are blank after stripping fail validation."""
        with pytest.raises(ValidationError, match="Username must not be blank"):
            _profile(username="   ")

    async def test__update_user__write_error_raises(
        self, db_session: AsyncSession,
    ) -> None:
        """Username collisions surface as WriteFailureError."""
        await update_user(db_session, _profile("user_alice", username="taken"))

        with pytest.raises(WriteFailureError, match="Failed to create/update user"):
            await update_user(db_session, _profile("user_bob", username="TAKEN"))

    async def test__update_user__onboarding_invalidates_onboarding_and_home(
        self, db_session: AsyncSession, page_cache: AsyncMock,
    ) -> None:
        """Saving from onboarding evicts the onboarding and home pages."""
        await update_user(db_session, _profile(path="/onboarding"))

        page_cache.invalidate.assert_awaited_once_with("/onboarding", "/")

    async def test__update_user__profile_edit_invalidates_only_that_page(
        self, db_session: AsyncSession, page_cache: AsyncMock,
    ) -> None:
        """Saving from the profile edit page evicts only that page."""
        await update_user(db_session, _profile(path="/profile/edit"))

        page_cache.invalidate.assert_awaited_once_with("/profile/edit")

    async def test__update_user__failed_save_does_not_invalidate(
        self, db_session: AsyncSession, page_cache: AsyncMock,
    ) -> None:
        """No cache eviction happens when the write fails."""
        await update_user(db_session, _profile("user_alice", username="taken"))
        page_cache.invalidate.reset_mock()

        with pytest.raises(WriteFailureError):
            await update_user(db_session, _profile("user_bob", username="taken"))

        page_cache.invalidate.assert_not_awaited()


class TestFetchUsers:
    """Tests for the paginated user listing."""

    async def test__fetch_users__excludes_requesting_user(
        self, db_session: AsyncSession,
    ) -> None:
        """The caller never appears in their own listing."""
        await make_user(db_session, "user_alice")
        await make_user(db_session, "user_bob")

        result = await fetch_users(db_session, UserSearchQuery(user_id="user_alice"))

        assert [u.id for u in result.users] == ["user_bob"]
        assert result.has_next is False

    async def test__fetch_users__search_is_case_insensitive_on_name_or_username(
        self, db_session: AsyncSession,
    ) -> None:
        """'ana' matches name 'Ana' and username 'anax', not unrelated users."""
        await make_user(db_session, "me")
        await make_user(db_session, "u1", username="zed", name="Ana")
        await make_user(db_session, "u2", username="anax", name="Someone")
        await make_user(db_session, "u3", username="bob", name="Bob")

        result = await fetch_users(
            db_session, UserSearchQuery(user_id="me", search_string="ana"),
        )

        assert {u.id for u in result.users} == {"u1", "u2"}

    async def test__fetch_users__search_treats_wildcards_literally(
        self, db_session: AsyncSession,
    ) -> None:
        """LIKE wildcards in the search string match only themselves."""
        await make_user(db_session, "me")
        await make_user(db_session, "u1", username="under_score", name="U")
        await make_user(db_session, "u2", username="underxscore", name="X")

        result = await fetch_users(
            db_session, UserSearchQuery(user_id="me", search_string="under_"),
        )

        assert [u.id for u in result.users] == ["u1"]

    async def test__fetch_users__blank_search_returns_everyone(
        self, db_session: AsyncSession,
    ) -> None:
        """Whitespace-only search applies no filter."""
        await make_user(db_session, "me")
        await make_user(db_session, "u1")
        await make_user(db_session, "u2")

        result = await fetch_users(
            db_session, UserSearchQuery(user_id="me", search_string="   "),
        )

        assert len(result.users) == 2

    async def test__fetch_users__has_next_across_pages(
        self, db_session: AsyncSession,
    ) -> None:
        """With 5 matches and page size 2, pages 1-2 have next and page 3 does not."""
        await make_user(db_session, "me")
        for i in range(5):
            await make_user(db_session, f"u{i}")

        pages = [
            await fetch_users(
                db_session, UserSearchQuery(user_id="me", page_number=n, page_size=2),
            )
            for n in (1, 2, 3)
        ]

        assert [len(p.users) for p in pages] == [2, 2, 1]
        assert [p.has_next for p in pages] == [True, True, False]
        all_ids = [u.id for p in pages for u in p.users]
        assert len(set(all_ids)) == 5

    async def test__fetch_users__sort_order(self, db_session: AsyncSession) -> None:
        """desc lists newest users first, asc oldest first."""
        await make_user(db_session, "me")
        for i in range(3):
            await make_user(db_session, f"u{i}")

        desc = await fetch_users(db_session, UserSearchQuery(user_id="me", sort_by="desc"))
        asc = await fetch_users(db_session, UserSearchQuery(user_id="me", sort_by="asc"))

        assert [u.id for u in desc.users] == ["u2", "u1", "u0"]
        assert [u.id for u in asc.users] == ["u0", "u1", "u2"]

    async def test__fetch_users__issues_separate_count_and_page_queries(
        self, db_session: AsyncSession, statements: list[str],
    ) -> None:
        """Total count and page are fetched by two queries."""
        await make_user(db_session, "me")
        statements.clear()

        await fetch_users(db_session, UserSearchQuery(user_id="me"))

        selects = [s for s in statements if s.lstrip().upper().startswith("SELECT")]
        assert len(selects) == 2
        assert any("count(" in s.lower() for s in selects)
