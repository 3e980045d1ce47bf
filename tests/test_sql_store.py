"""SqlSessionStore tests — mocked AsyncSession, no database required.

Mock strategy:
  - ``session_factory`` returns an async context manager wrapping an
    ``AsyncMock`` session, so every ``async with self._session() as db``
    yields the same ``db`` whose ``execute``/``commit`` calls are inspected.
  - Statements are compiled with the PostgreSQL dialect to check the SQL
    shape (upsert, expiry filter) without a server.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from survey_db.repository import SqlSessionStore
from survey_engine.errors import SessionStoreError
from survey_engine.models.block import SyntheticAck
from survey_engine.models.session import SurveyState


def _compiled(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


@pytest.fixture
def db():
    session = AsyncMock()
    session.execute.return_value = MagicMock()
    return session


@pytest.fixture
def sql_store(db):
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=db)
    ctx.__aexit__ = AsyncMock(return_value=False)
    factory = MagicMock(return_value=ctx)
    return SqlSessionStore(session_factory=factory)


def _state() -> SurveyState:
    return SurveyState(
        survey_id="arts-donor-2026",
        response_id="resp-1",
        current_block_id="b3-empty-message",
        variables={"user_name": ""},
        completed_blocks=["b0", "b1", "b2", "b3"],
        answers={"b3": ""},
        pending_ack=SyntheticAck(original_id="b3", message="No problem!", next="b4"),
    )


class TestGet:

    @pytest.mark.asyncio
    async def test_returns_state(self, sql_store, db):
        state = _state()
        db.execute.return_value.scalar_one_or_none.return_value = state.model_dump(
            mode="json", by_alias=True,
        )
        loaded = await sql_store.get("sid")
        assert loaded.current_block_id == "b3-empty-message"
        assert loaded.pending_ack.next == "b4"
        assert loaded.answers == {"b3": ""}

    @pytest.mark.asyncio
    async def test_missing_or_expired(self, sql_store, db):
        db.execute.return_value.scalar_one_or_none.return_value = None
        assert await sql_store.get("sid") is None

    @pytest.mark.asyncio
    async def test_filters_expired_rows(self, sql_store, db):
        db.execute.return_value.scalar_one_or_none.return_value = None
        await sql_store.get("sid")
        sql = _compiled(db.execute.call_args.args[0])
        assert "survey_sessions.expires_at > now()" in sql


class TestSet:

    @pytest.mark.asyncio
    async def test_upsert(self, sql_store, db):
        await sql_store.set("sid", _state(), 3600)
        sql = _compiled(db.execute.call_args.args[0])
        assert sql.startswith("INSERT INTO survey_sessions")
        assert "ON CONFLICT (session_id) DO UPDATE" in sql
        assert "created_at = " not in sql.split("DO UPDATE")[1], "created_at kept from first insert"
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_state_serialised_with_aliases(self, sql_store, db):
        await sql_store.set("sid", _state(), 60)
        params = db.execute.call_args.args[0].compile(dialect=postgresql.dialect()).params
        assert params["session_id"] == "sid"
        assert params["response_id"] == "resp-1"
        assert params["state"]["currentBlockId"] == "b3-empty-message"
        assert params["state"]["pendingAck"]["originalId"] == "b3"
        assert (params["expires_at"] - params["updated_at"]).total_seconds() == 60


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete(self, sql_store, db):
        await sql_store.delete("sid")
        sql = _compiled(db.execute.call_args.args[0])
        assert sql.startswith("DELETE FROM survey_sessions")
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_purge_expired(self, sql_store, db):
        db.execute.return_value.rowcount = 3
        assert await sql_store.purge_expired() == 3
        sql = _compiled(db.execute.call_args.args[0])
        assert "survey_sessions.expires_at <= now()" in sql

    @pytest.mark.asyncio
    async def test_purge_nothing(self, sql_store, db):
        db.execute.return_value.rowcount = None
        assert await sql_store.purge_expired() == 0


class TestFailures:
    """Backend errors surface as SessionStoreError, never as None."""

    @pytest.mark.parametrize("call", [
        lambda s: s.get("sid"),
        lambda s: s.set("sid", _state(), 60),
        lambda s: s.delete("sid"),
        lambda s: s.purge_expired(),
    ])
    @pytest.mark.asyncio
    async def test_operational_error(self, sql_store, db, call):
        db.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
        with pytest.raises(SessionStoreError):
            await call(sql_store)

    @pytest.mark.asyncio
    async def test_corrupt_state_row(self, sql_store, db):
        db.execute.return_value.scalar_one_or_none.return_value = {"surveyId": "s", "answers": "oops"}
        with pytest.raises(SessionStoreError, match="unreadable"):
            await sql_store.get("sid")

    @pytest.mark.asyncio
    async def test_commit_failure(self, sql_store, db):
        db.commit.side_effect = OperationalError("COMMIT", {}, Exception("lost"))
        with pytest.raises(SessionStoreError, match="Failed to save session sid"):
            await sql_store.set("sid", _state(), 60)
