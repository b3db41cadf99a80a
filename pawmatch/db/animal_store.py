"""
Animal Store - persistence for animal aggregates.
"""

from typing import List, Optional
from loguru import logger
from sqlalchemy import insert, select, update as sql_update

from ..errors import AnimalNotFound
from ..schemas.animal_data import Animal, AnimalCreate, AnimalUpdate
from .tables import animals
from .transaction import Transaction


class AnimalStore:
    """
    SQL-backed store for animals.

    Every method takes the transaction handle as its first argument. Locked
    reads always acquire row locks in ascending id order.
    """

    def create(self, tx: Transaction, owner_id: str, data: AnimalCreate) -> Animal:
        """
        Insert a new animal listing.

        Args:
            tx: Open transaction
            owner_id: Owning user identifier
            data: Validated listing fields

        Returns:
            Persisted animal
        """
        values = data.model_dump(mode="json")
        values.update(owner_id=owner_id, matched=False, pairing_count=0, is_deleted=False)

        result = tx.execute(insert(animals).values(**values))
        animal_id = result.inserted_primary_key[0]

        logger.debug(f"Inserted animal {animal_id} for owner {owner_id}")
        return self.get_one(tx, animal_id)

    def get_one(self, tx: Transaction, animal_id: int, for_update: bool = False) -> Animal:
        """
        Fetch a single non-deleted animal.

        Args:
            tx: Open transaction
            animal_id: Animal identifier
            for_update: Lock the row until the transaction ends

        Returns:
            Animal

        Raises:
            AnimalNotFound: If the animal does not exist or is soft-deleted
        """
        found = self.get_by_ids(tx, [animal_id], for_update=for_update)
        if not found:
            raise AnimalNotFound(f"animal {animal_id} not found")
        return found[0]

    def get_by_ids(
        self,
        tx: Transaction,
        ids: List[int],
        for_update: bool = False,
        include_deleted: bool = False
    ) -> List[Animal]:
        """
        Fetch animals by id, ordered by ascending id.

        Missing ids are silently skipped; callers compare the result length
        against what they asked for.

        Args:
            tx: Open transaction
            ids: Animal identifiers
            for_update: Lock the rows (in ascending id order) until the transaction ends
            include_deleted: Also return soft-deleted animals

        Returns:
            Animals found, sorted by id
        """
        wanted = sorted(set(ids))
        if not wanted:
            return []

        query = select(animals).where(animals.c.id.in_(wanted)).order_by(animals.c.id.asc())
        if not include_deleted:
            query = query.where(animals.c.is_deleted.is_(False))
        if for_update:
            query = query.with_for_update()

        rows = tx.execute(query).all()
        return [Animal.model_validate(row._asdict()) for row in rows]

    def list_page(
        self,
        conn: Transaction,
        owner_id: Optional[str] = None,
        exclude_owner_id: Optional[str] = None,
        limit: int = 5,
        offset: int = 0
    ) -> List[Animal]:
        """
        List non-deleted animals, newest first.

        Args:
            conn: Connection or transaction
            owner_id: Only animals owned by this user
            exclude_owner_id: Only animals not owned by this user
            limit: Page size
            offset: Rows to skip

        Returns:
            Page of animals
        """
        query = select(animals).where(animals.c.is_deleted.is_(False))
        if owner_id is not None:
            query = query.where(animals.c.owner_id == owner_id)
        elif exclude_owner_id is not None:
            query = query.where(animals.c.owner_id != exclude_owner_id)

        query = query.order_by(animals.c.id.desc()).limit(limit).offset(offset)

        rows = conn.execute(query).all()
        return [Animal.model_validate(row._asdict()) for row in rows]

    def update(self, tx: Transaction, changes: AnimalUpdate) -> int:
        """
        Apply a partial update to every animal in ``changes.ids``.

        Only present fields are written. The relative pairing count delta is
        applied as ``pairing_count = pairing_count + delta`` so it composes
        with the stored value under the row lock.

        Args:
            tx: Open transaction
            changes: Target ids and fields to write

        Returns:
            Number of rows updated
        """
        values = changes.values()
        if changes.pairing_count_delta is not None:
            values["pairing_count"] = animals.c.pairing_count + changes.pairing_count_delta

        if not values:
            return 0

        result = tx.execute(
            sql_update(animals).where(animals.c.id.in_(changes.ids)).values(**values)
        )
        logger.debug(f"Updated animals {sorted(changes.ids)}: {sorted(values)}")
        return result.rowcount
