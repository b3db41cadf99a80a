"""
Match Store - persistence for match proposals.
"""

from typing import List
from loguru import logger
from sqlalchemy import delete, insert, or_, select, update

from ..errors import MatchNotFound
from ..schemas.animal_data import Animal
from ..schemas.match_data import Match, MatchDetail
from .tables import animals, matches
from .transaction import Transaction


class MatchStore:
    """SQL-backed store for match proposals."""

    def create(
        self,
        tx: Transaction,
        issuer_user_id: str,
        receiver_user_id: str,
        issuer_animal_id: int,
        receiver_animal_id: int,
        message: str
    ) -> Match:
        """
        Insert an unresolved proposal.

        Args:
            tx: Open transaction
            issuer_user_id: Proposing user
            receiver_user_id: Owner of the receiver animal
            issuer_animal_id: Animal owned by the issuer
            receiver_animal_id: Animal owned by the receiver
            message: Note from the issuer

        Returns:
            Persisted proposal
        """
        result = tx.execute(
            insert(matches).values(
                issuer_user_id=issuer_user_id,
                receiver_user_id=receiver_user_id,
                issuer_animal_id=issuer_animal_id,
                receiver_animal_id=receiver_animal_id,
                message=message,
                resolved=False,
            )
        )
        match_id = result.inserted_primary_key[0]

        logger.debug(f"Inserted match {match_id}: {issuer_animal_id} -> {receiver_animal_id}")
        return self.get_by_id(tx, match_id)

    def get_by_id(self, tx: Transaction, match_id: int, for_update: bool = False) -> Match:
        """
        Fetch a proposal by id.

        Raises:
            MatchNotFound: If no proposal has this id
        """
        query = select(matches).where(matches.c.id == match_id)
        if for_update:
            query = query.with_for_update()

        row = tx.execute(query).first()
        if row is None:
            raise MatchNotFound(f"match {match_id} not found")
        return Match.model_validate(row._asdict())

    def list_for_user(self, conn: Transaction, user_id: str) -> List[MatchDetail]:
        """
        List proposals the user issued or received, newest first, with both animals.

        Args:
            conn: Connection or transaction
            user_id: User identifier

        Returns:
            Proposal details
        """
        rows = conn.execute(
            select(matches)
            .where(or_(matches.c.issuer_user_id == user_id, matches.c.receiver_user_id == user_id))
            .order_by(matches.c.id.desc())
        ).all()
        if not rows:
            return []

        proposals = [Match.model_validate(row._asdict()) for row in rows]
        animal_ids = {m.issuer_animal_id for m in proposals} | {m.receiver_animal_id for m in proposals}
        animal_rows = conn.execute(select(animals).where(animals.c.id.in_(animal_ids))).all()
        by_id = {row.id: Animal.model_validate(row._asdict()) for row in animal_rows}

        details = []
        for m in proposals:
            if m.issuer_animal_id not in by_id or m.receiver_animal_id not in by_id:
                logger.warning(f"Match {m.id} references a missing animal; skipping")
                continue
            details.append(MatchDetail(
                id=m.id,
                message=m.message,
                resolved=m.resolved,
                created_at=m.created_at,
                issuer_user_id=m.issuer_user_id,
                receiver_user_id=m.receiver_user_id,
                issuer_animal=by_id[m.issuer_animal_id],
                receiver_animal=by_id[m.receiver_animal_id],
            ))
        return details

    def mark_resolved(self, tx: Transaction, match_id: int) -> int:
        """
        Set ``resolved`` on a proposal that is still unresolved.

        Returns:
            Number of rows updated (0 if it was already resolved)
        """
        result = tx.execute(
            update(matches)
            .where(matches.c.id == match_id, matches.c.resolved.is_(False))
            .values(resolved=True)
        )
        return result.rowcount

    def delete_by_id(self, tx: Transaction, match_id: int) -> int:
        """Delete one proposal. Returns the number of rows deleted."""
        result = tx.execute(delete(matches).where(matches.c.id == match_id))
        return result.rowcount

    def delete_unresolved_by_animals(
        self,
        tx: Transaction,
        animal_ids: List[int],
        exclude_match_id: int
    ) -> int:
        """
        Delete every unresolved proposal referencing any of the animals, except one.

        Args:
            tx: Open transaction
            animal_ids: Animals whose pending proposals are withdrawn
            exclude_match_id: Proposal to keep

        Returns:
            Number of rows deleted
        """
        result = tx.execute(
            delete(matches).where(
                or_(
                    matches.c.issuer_animal_id.in_(animal_ids),
                    matches.c.receiver_animal_id.in_(animal_ids),
                ),
                matches.c.id != exclude_match_id,
                matches.c.resolved.is_(False),
            )
        )
        return result.rowcount
