"""
Unit tests for row locking: the SQL the stores emit on PostgreSQL, the
order in which the match engine takes its locks, and the lock wait timeout.
"""

import pytest
from unittest.mock import MagicMock, Mock, patch
from sqlalchemy.dialects import postgresql

from pawmatch.config import Settings
from pawmatch.db.transaction import TransactionScope
from pawmatch.errors import MatchNotFound
from pawmatch.schemas.animal_data import Sex


def compile_pg(statement) -> str:
    """Render a statement as PostgreSQL SQL on a single line."""
    sql = statement.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True})
    return " ".join(str(sql).split())


@pytest.fixture
def fake_tx():
    """A transaction handle that records statements and returns no rows."""
    tx = Mock()
    tx.execute.return_value.all.return_value = []
    tx.execute.return_value.first.return_value = None
    return tx


class TestLockingStatements:
    """Tests for the locking SQL emitted by the stores."""

    def test_locked_animal_read_orders_by_ascending_id(self, animal_store, fake_tx):
        """Test animal locks are requested in ascending id order."""
        animal_store.get_by_ids(fake_tx, [9, 3, 5, 3], for_update=True)

        sql = compile_pg(fake_tx.execute.call_args[0][0])

        assert "animals.id IN (3, 5, 9)" in sql
        assert sql.endswith("ORDER BY animals.id ASC FOR UPDATE")

    def test_plain_animal_read_takes_no_lock(self, animal_store, fake_tx):
        """Test unlocked reads do not emit FOR UPDATE."""
        animal_store.get_by_ids(fake_tx, [1, 2])

        sql = compile_pg(fake_tx.execute.call_args[0][0])

        assert "FOR UPDATE" not in sql

    def test_locked_proposal_read(self, match_store, fake_tx):
        """Test a locked proposal read emits FOR UPDATE on that row."""
        with pytest.raises(MatchNotFound):
            match_store.get_by_id(fake_tx, 7, for_update=True)

        sql = compile_pg(fake_tx.execute.call_args[0][0])

        assert "matches.id = 7" in sql
        assert sql.endswith("FOR UPDATE")


class TestLockOrder:
    """Tests for the order in which engine operations take row locks."""

    @pytest.fixture
    def lock_log(self, animal_store, match_store):
        """Record every locked read made through the stores."""
        log = []
        read_animals = animal_store.get_by_ids
        read_match = match_store.get_by_id

        def record_animals(tx, ids, for_update=False, include_deleted=False):
            if for_update:
                log.append(("animals", sorted(set(ids))))
            return read_animals(tx, ids, for_update=for_update, include_deleted=include_deleted)

        def record_match(tx, match_id, for_update=False):
            if for_update:
                log.append(("match", match_id))
            return read_match(tx, match_id, for_update=for_update)

        with patch.object(animal_store, "get_by_ids", side_effect=record_animals), \
                patch.object(match_store, "get_by_id", side_effect=record_match):
            yield log

    @pytest.fixture
    def proposal(self, make_animal, match_engine, lock_log):
        """An unresolved proposal from u1's male to u2's female."""
        leo = make_animal("u2", Sex.MALE, "Leo")
        luna = make_animal("u1", Sex.FEMALE, "Luna")
        match = match_engine.create_match(luna.id, leo.id, "u1", "Hello there")
        lock_log.clear()
        return match, sorted([leo.id, luna.id])

    def test_create_locks_only_animals(self, make_animal, match_engine, lock_log):
        """Test Create locks both animals in one ascending read."""
        leo = make_animal("u1", Sex.MALE, "Leo")
        luna = make_animal("u2", Sex.FEMALE, "Luna")
        lock_log.clear()

        match_engine.create_match(luna.id, leo.id, "u2", "Hello there")

        assert lock_log == [("animals", sorted([leo.id, luna.id]))]

    def test_approve_locks_animals_before_proposal(self, match_engine, proposal, lock_log):
        """Test Approve locks the animals first, then the proposal."""
        match, animal_ids = proposal

        match_engine.approve_match(match.id, user_id="u2")

        assert lock_log == [("animals", animal_ids), ("match", match.id)]

    def test_delete_locks_animals_before_proposal(self, match_engine, proposal, lock_log):
        """Test Delete locks the animals first, then the proposal."""
        match, animal_ids = proposal

        match_engine.delete_match(match.id, "u1")

        assert lock_log == [("animals", animal_ids), ("match", match.id)]

    def test_reject_locks_proposal(self, match_engine, proposal, lock_log):
        """Test Reject locks the proposal and no animals."""
        match, _ = proposal

        match_engine.reject_match(match.id, user_id="u2")

        assert lock_log == [("match", match.id)]


class TestLockTimeout:
    """Tests for the per-transaction lock wait timeout."""

    def _scope_with(self, dialect_name, lock_timeout_ms):
        tx = Mock()
        tx.dialect.name = dialect_name
        engine = MagicMock()
        engine.begin.return_value.__enter__.return_value = tx
        return TransactionScope(engine, Settings(lock_timeout_ms=lock_timeout_ms)), tx

    def test_postgresql_sets_lock_timeout(self):
        """Test each PostgreSQL transaction bounds its lock waits."""
        scope, tx = self._scope_with("postgresql", 250)

        assert scope.run("test", lambda t: "done") == "done"

        statement = tx.execute.call_args_list[0][0][0]
        assert str(statement) == "SET LOCAL lock_timeout = 250"

    @pytest.mark.parametrize("dialect_name, lock_timeout_ms", [
        ("sqlite", 250),
        ("postgresql", 0),
    ])
    def test_lock_timeout_skipped(self, dialect_name, lock_timeout_ms):
        """Test no timeout is issued on SQLite or when disabled."""
        scope, tx = self._scope_with(dialect_name, lock_timeout_ms)

        scope.run("test", lambda t: None)

        tx.execute.assert_not_called()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
