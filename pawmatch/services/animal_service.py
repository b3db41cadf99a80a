"""
Animal Service - Listing Management
Creates, reads, edits and soft-deletes animal listings.
"""

from typing import List, Optional, Union
from loguru import logger

from ..config import get_settings
from ..db.animal_store import AnimalStore
from ..db.transaction import Transaction, TransactionScope
from ..errors import AnimalNotFound, NotOwner, SexLockedAfterMatchRequest
from ..schemas.animal_data import Animal, AnimalChanges, AnimalCreate, AnimalUpdate
from ..utils.validators import parse_id, sanitize_string


class AnimalService:
    """
    Service layer over the animal store.

    This is the only place user-initiated animal edits pass through, and it
    enforces the sex-immutability rule before any write reaches the store.
    """

    def __init__(self, store: AnimalStore, scope: TransactionScope):
        """
        Initialize the animal service.

        Args:
            store: Animal store
            scope: Transaction scope
        """
        self.store = store
        self.scope = scope

    def create_animal(self, owner_id: str, data: AnimalCreate) -> Animal:
        """
        List a new animal.

        Args:
            owner_id: Owning user
            data: Listing fields

        Returns:
            Persisted animal
        """
        data = data.model_copy(update={
            "name": sanitize_string(data.name, 30),
            "breed": sanitize_string(data.breed, 50),
            "description": sanitize_string(data.description, 200),
        })
        animal = self.scope.run(
            "create animal",
            lambda tx: self.store.create(tx, owner_id, data),
        )
        logger.info(f"Created animal {animal.id} for owner {owner_id}")
        return animal

    def get_animal(self, animal_id: Union[int, str]) -> Animal:
        """
        Fetch a non-deleted animal by id.

        Raises:
            AnimalNotFound: If missing or soft-deleted
        """
        parsed = parse_id(animal_id, "animal id")
        return self.scope.read("get animal", lambda conn: self.store.get_one(conn, parsed))

    def list_animals(
        self,
        owner_id: Optional[str] = None,
        exclude_owner_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Animal]:
        """
        List non-deleted animals, newest first.

        Args:
            owner_id: Only this user's animals
            exclude_owner_id: Only animals not owned by this user
            limit: Page size (defaults to settings.default_page_size)
            offset: Rows to skip

        Returns:
            Page of animals
        """
        limit = limit or get_settings().default_page_size
        return self.scope.read(
            "list animals",
            lambda conn: self.store.list_page(
                conn,
                owner_id=owner_id,
                exclude_owner_id=exclude_owner_id,
                limit=limit,
                offset=offset,
            ),
        )

    def update_animals(self, changes: AnimalUpdate) -> None:
        """
        Apply a partial update to a set of animals.

        Locks every targeted animal and rejects a sex change on any animal
        that already has a pending or finalized pairing.

        Args:
            changes: Target ids and fields to write

        Raises:
            AnimalNotFound: If any targeted animal is missing
            SexLockedAfterMatchRequest: If a locked animal's sex would change
        """
        self.scope.run("update animals", lambda tx: self._apply_update(tx, changes))
        logger.info(f"Updated animals {sorted(changes.ids)}")

    def update_animal(
        self,
        animal_id: Union[int, str],
        user_id: str,
        changes: AnimalChanges
    ) -> Animal:
        """
        Edit one of the user's own listings.

        Args:
            animal_id: Animal identifier
            user_id: Requesting user, must be the owner
            changes: Fields to change

        Returns:
            Updated animal
        """
        parsed = parse_id(animal_id, "animal id")
        fields = changes.model_dump(mode="json", exclude_none=True)
        for key, max_length in (("name", 30), ("breed", 50), ("description", 200)):
            if key in fields:
                fields[key] = sanitize_string(fields[key], max_length)

        def _update(tx: Transaction) -> Animal:
            animal = self.store.get_one(tx, parsed, for_update=True)
            if animal.owner_id != user_id:
                raise NotOwner(f"user {user_id} does not own animal {parsed}")
            self._apply_update(tx, AnimalUpdate(ids=[parsed], **fields))
            return self.store.get_one(tx, parsed)

        try:
            animal = self.scope.run("update animal", _update)
        except (NotOwner, SexLockedAfterMatchRequest) as e:
            logger.warning(f"Update animal {parsed} rejected: {e}")
            raise

        logger.info(f"Animal {parsed} updated by owner {user_id}")
        return animal

    def delete_animal(self, animal_id: Union[int, str], user_id: str) -> None:
        """
        Soft-delete one of the user's own listings.

        Args:
            animal_id: Animal identifier
            user_id: Requesting user, must be the owner
        """
        parsed = parse_id(animal_id, "animal id")

        def _delete(tx: Transaction) -> None:
            animal = self.store.get_one(tx, parsed, for_update=True)
            if animal.owner_id != user_id:
                raise NotOwner(f"user {user_id} does not own animal {parsed}")
            self.store.update(tx, AnimalUpdate(ids=[parsed], is_deleted=True))

        self.scope.run("delete animal", _delete)
        logger.info(f"Animal {parsed} deleted by owner {user_id}")

    def _apply_update(self, tx: Transaction, changes: AnimalUpdate) -> None:
        """Lock the targets, enforce sex immutability, then write."""
        locked = self.store.get_by_ids(tx, changes.ids, for_update=True)
        if len(locked) != len(set(changes.ids)):
            raise AnimalNotFound(f"animals {sorted(changes.ids)} must all exist")

        if changes.sex is not None:
            for animal in locked:
                if animal.pairing_count > 0 and animal.sex != changes.sex:
                    raise SexLockedAfterMatchRequest(
                        f"animal {animal.id} has {animal.pairing_count} pairing(s)"
                    )

        self.store.update(tx, changes)
