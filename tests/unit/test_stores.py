"""
Unit tests for the animal and match stores and the transaction scope.
"""

from datetime import timezone

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError

from pawmatch.db.tables import utc_now
from pawmatch.errors import InfrastructureError, MatchNotFound, SameSex
from pawmatch.schemas.animal_data import AnimalUpdate, Sex
from pawmatch.schemas.match_data import Match


class TestAnimalUpdate:
    """Tests for the partial update payload."""

    def test_absolute_and_relative_count_are_exclusive(self):
        """Test supplying both pairing count modes is rejected."""
        with pytest.raises(ValidationError):
            AnimalUpdate(ids=[1], pairing_count=1, pairing_count_delta=1)

    def test_values_only_include_present_fields(self):
        """Test absent fields are not written, False is."""
        changes = AnimalUpdate(ids=[1, 2], matched=False, sex=Sex.FEMALE, pairing_count_delta=-1)

        assert changes.values() == {"matched": False, "sex": "female"}

    def test_ids_required(self):
        """Test an update must target at least one animal."""
        with pytest.raises(ValidationError):
            AnimalUpdate(ids=[], matched=True)


class TestAnimalStore:
    """Tests for AnimalStore."""

    def test_get_by_ids_sorted_and_skips_missing(self, scope, animal_store, make_animal):
        """Test results come back in ascending id order."""
        first = make_animal("u1", Sex.MALE)
        second = make_animal("u2", Sex.FEMALE)

        found = scope.run(
            "test",
            lambda tx: animal_store.get_by_ids(tx, [second.id, 9999, first.id], for_update=True),
        )

        assert [a.id for a in found] == [first.id, second.id]

    def test_relative_and_absolute_pairing_count(self, scope, animal_store, make_animal, fetch_animal):
        """Test delta composes with the stored value and absolute overwrites it."""
        animal = make_animal("u1", Sex.MALE)

        scope.run("test", lambda tx: animal_store.update(tx, AnimalUpdate(ids=[animal.id], pairing_count_delta=3)))
        assert fetch_animal(animal.id).pairing_count == 3

        scope.run("test", lambda tx: animal_store.update(tx, AnimalUpdate(ids=[animal.id], pairing_count=1)))
        assert fetch_animal(animal.id).pairing_count == 1

    def test_partial_update_leaves_other_fields(self, scope, animal_store, make_animal, fetch_animal):
        """Test columns left out of the update keep their values."""
        animal = make_animal("u1", Sex.MALE, "Tiger")

        scope.run("test", lambda tx: animal_store.update(tx, AnimalUpdate(ids=[animal.id], matched=True)))

        stored = fetch_animal(animal.id)
        assert stored.matched is True
        assert stored.name == "Tiger"
        assert stored.pairing_count == 0

    def test_negative_pairing_count_rejected_by_database(self, scope, animal_store, make_animal):
        """Test the check constraint backs up the engine's underflow guard."""
        animal = make_animal("u1", Sex.MALE)

        with pytest.raises(InfrastructureError) as exc_info:
            scope.run(
                "decrement",
                lambda tx: animal_store.update(tx, AnimalUpdate(ids=[animal.id], pairing_count_delta=-1)),
            )

        assert isinstance(exc_info.value.__cause__, IntegrityError)

    def test_created_at_defaults_are_timezone_aware(self):
        """Test timestamps default to an aware UTC clock."""
        assert utc_now().tzinfo is timezone.utc
        assert Match(
            id=1, issuer_user_id="u1", receiver_user_id="u2",
            issuer_animal_id=1, receiver_animal_id=2, message="Hello there",
        ).created_at.tzinfo is timezone.utc


class TestMatchStore:
    """Tests for MatchStore."""

    @pytest.fixture
    def animals(self, make_animal):
        return [
            make_animal("u1", Sex.MALE, "A"),
            make_animal("u2", Sex.FEMALE, "B"),
            make_animal("u3", Sex.FEMALE, "C"),
            make_animal("u4", Sex.FEMALE, "D"),
        ]

    def _create(self, scope, match_store, issuer, receiver):
        return scope.run(
            "test",
            lambda tx: match_store.create(
                tx, issuer.owner_id, receiver.owner_id, issuer.id, receiver.id, "Hello there"
            ),
        )

    def test_get_by_id_missing(self, scope, match_store):
        """Test an unknown id raises MatchNotFound."""
        with pytest.raises(MatchNotFound):
            scope.read("test", lambda conn: match_store.get_by_id(conn, 123))

    def test_mark_resolved_only_once(self, scope, match_store, animals):
        """Test the resolution update affects unresolved rows only."""
        a, b, _, _ = animals
        match = self._create(scope, match_store, a, b)

        assert scope.run("test", lambda tx: match_store.mark_resolved(tx, match.id)) == 1
        assert scope.run("test", lambda tx: match_store.mark_resolved(tx, match.id)) == 0

    def test_delete_unresolved_by_animals(self, scope, match_store, animals):
        """Test the cascade keeps the excluded and resolved proposals."""
        a, b, c, d = animals
        keep = self._create(scope, match_store, a, b)
        sibling = self._create(scope, match_store, a, c)
        resolved = self._create(scope, match_store, a, d)
        scope.run("test", lambda tx: match_store.mark_resolved(tx, resolved.id))

        removed = scope.run(
            "test",
            lambda tx: match_store.delete_unresolved_by_animals(tx, [a.id, b.id], exclude_match_id=keep.id),
        )

        assert removed == 1
        remaining = {m.id for m in scope.read("test", lambda conn: match_store.list_for_user(conn, "u1"))}
        assert remaining == {keep.id, resolved.id}
        assert sibling.id not in remaining

    def test_list_for_user_newest_first(self, scope, match_store, animals):
        """Test both issuer and receiver see the proposal with animal details."""
        a, b, c, _ = animals
        older = self._create(scope, match_store, a, b)
        newer = self._create(scope, match_store, c, a)

        details = scope.read("test", lambda conn: match_store.list_for_user(conn, "u1"))

        assert [d.id for d in details] == [newer.id, older.id]
        mine, theirs = details[0].own_and_other("u1")
        assert mine.id == a.id
        assert theirs.id == c.id


class TestTransactionScope:
    """Tests for TransactionScope."""

    def test_domain_error_rolls_back(self, scope, match_store, make_animal):
        """Test writes before a domain error are discarded."""
        a = make_animal("u1", Sex.MALE)
        b = make_animal("u2", Sex.FEMALE)

        def _unit(tx):
            match_store.create(tx, "u1", "u2", a.id, b.id, "Hello there")
            raise SameSex()

        with pytest.raises(SameSex):
            scope.run("test", _unit)

        assert scope.read("test", lambda conn: match_store.list_for_user(conn, "u1")) == []

    def test_sqlalchemy_error_wrapped(self, scope):
        """Test store failures surface as InfrastructureError with context."""
        def _unit(tx):
            raise OperationalError("SELECT 1", {}, Exception("could not serialize access"))

        with pytest.raises(InfrastructureError) as exc_info:
            scope.run("approve match", _unit)

        assert str(exc_info.value).startswith("approve match:")

    def test_returns_unit_result(self, scope):
        """Test the unit of work's return value is passed through."""
        assert scope.run("test", lambda tx: 42) == 42


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
