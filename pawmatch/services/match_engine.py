"""
Match Engine - Pairing Proposal Lifecycle
Creates, approves, rejects and withdraws match proposals while keeping the
animals they reference consistent.

Lock discipline: within a transaction, animal rows are locked first, always
in ascending id order, and proposal rows after them. Approve and Delete read
the proposal once without a lock to learn which animals it references, lock
those animals, then lock and re-read the proposal. Keeping every transaction
on the same animals-then-proposals order means the Approve cascade can never
wait on a proposal held by a concurrent Delete that is itself waiting on one
of Approve's animals.
"""

from typing import List, Optional, Protocol, Union, Callable, TypeVar
from loguru import logger

from ..db.transaction import Transaction
from ..errors import (
    AlreadyMatched,
    AnimalNotFound,
    InfrastructureError,
    InvalidMatchMessage,
    MatchAlreadyResolved,
    NotIssuer,
    NotOwner,
    NotReceiver,
    PairingCountUnderflow,
    PawMatchError,
    SameOwner,
    SameSex,
)
from ..schemas.animal_data import Animal, AnimalUpdate
from ..schemas.match_data import Match, MatchDetail
from ..utils.validators import parse_id, sanitize_string, validate_match_message

T = TypeVar("T")


class AnimalRepository(Protocol):
    """Animal operations the engine depends on."""

    def get_by_ids(
        self,
        tx: Transaction,
        ids: List[int],
        for_update: bool = False,
        include_deleted: bool = False
    ) -> List[Animal]: ...

    def update(self, tx: Transaction, changes: AnimalUpdate) -> int: ...


class MatchRepository(Protocol):
    """Proposal operations the engine depends on."""

    def create(
        self,
        tx: Transaction,
        issuer_user_id: str,
        receiver_user_id: str,
        issuer_animal_id: int,
        receiver_animal_id: int,
        message: str
    ) -> Match: ...

    def get_by_id(self, tx: Transaction, match_id: int, for_update: bool = False) -> Match: ...

    def list_for_user(self, conn: Transaction, user_id: str) -> List[MatchDetail]: ...

    def mark_resolved(self, tx: Transaction, match_id: int) -> int: ...

    def delete_by_id(self, tx: Transaction, match_id: int) -> int: ...

    def delete_unresolved_by_animals(
        self,
        tx: Transaction,
        animal_ids: List[int],
        exclude_match_id: int
    ) -> int: ...


class TransactionRunner(Protocol):
    """Scoped execution primitive."""

    def run(self, operation: str, unit_of_work: Callable[[Transaction], T]) -> T: ...

    def read(self, operation: str, query: Callable[[Transaction], T]) -> T: ...


class MatchEngine:
    """
    Orchestrates match proposals against the animal and match stores.

    Each mutating operation runs in a single transaction; every check happens
    before the first write, and any failure rolls the whole operation back.
    """

    def __init__(
        self,
        animals: AnimalRepository,
        matches: MatchRepository,
        scope: TransactionRunner
    ):
        """
        Initialize the match engine.

        Args:
            animals: Animal store
            matches: Match store
            scope: Transaction scope
        """
        self.animals = animals
        self.matches = matches
        self.scope = scope

    def create_match(
        self,
        issuer_animal_id: Union[int, str],
        receiver_animal_id: Union[int, str],
        user_id: str,
        message: str
    ) -> Match:
        """
        Propose a pairing between two animals.

        Checks run in this order: both animals exist, neither is matched,
        owners differ, sexes differ, the requesting user owns one of them.
        The animal the user owns becomes the issuer animal.

        Args:
            issuer_animal_id: Animal offered by the requesting user
            receiver_animal_id: Animal being asked for
            user_id: Requesting user
            message: Note to the receiver

        Returns:
            The created, unresolved proposal
        """
        first_id = parse_id(issuer_animal_id, "issuer animal id")
        second_id = parse_id(receiver_animal_id, "receiver animal id")
        if not validate_match_message(message):
            raise InvalidMatchMessage()
        message = sanitize_string(message, len(message))

        def _create(tx: Transaction) -> Match:
            locked = self.animals.get_by_ids(tx, [first_id, second_id], for_update=True)
            if first_id == second_id or len(locked) != 2:
                raise AnimalNotFound(f"animals {first_id} and {second_id} must both exist")

            by_id = {animal.id: animal for animal in locked}
            issuer, receiver = by_id[first_id], by_id[second_id]

            if issuer.matched or receiver.matched:
                raise AlreadyMatched()
            if issuer.owner_id == receiver.owner_id:
                raise SameOwner()
            if issuer.sex == receiver.sex:
                raise SameSex()

            if issuer.owner_id != user_id:
                if receiver.owner_id != user_id:
                    raise NotOwner(f"user {user_id} owns neither animal")
                issuer, receiver = receiver, issuer

            match = self.matches.create(
                tx,
                issuer_user_id=issuer.owner_id,
                receiver_user_id=receiver.owner_id,
                issuer_animal_id=issuer.id,
                receiver_animal_id=receiver.id,
                message=message,
            )
            self.animals.update(
                tx,
                AnimalUpdate(ids=[issuer.id, receiver.id], pairing_count_delta=1),
            )
            return match

        try:
            match = self.scope.run("create match", _create)
        except InfrastructureError:
            raise
        except PawMatchError as e:
            logger.warning(f"Create match rejected for user {user_id}: {e}")
            raise

        logger.info(
            f"Created match {match.id}: animal {match.issuer_animal_id} -> "
            f"{match.receiver_animal_id}"
        )
        return match

    def approve_match(self, match_id: Union[int, str], user_id: Optional[str] = None) -> None:
        """
        Approve a proposal and finalize the pairing.

        Marks the proposal resolved, deletes every other unresolved proposal
        referencing either animal, and sets both animals to matched with a
        pairing count of exactly one.

        Args:
            match_id: Proposal identifier
            user_id: Acting user; when given it must be the receiver
        """
        proposal_id = parse_id(match_id, "match id")

        def _approve(tx: Transaction) -> int:
            match, locked = self._lock_proposal(tx, proposal_id)
            if match.resolved:
                raise MatchAlreadyResolved()
            if user_id is not None and match.receiver_user_id != user_id:
                raise NotReceiver()
            if len(locked) != 2:
                raise AnimalNotFound(f"match {match.id} references a missing animal")

            animal_ids = match.animal_ids()
            self.matches.mark_resolved(tx, match.id)
            removed = self.matches.delete_unresolved_by_animals(
                tx, animal_ids, exclude_match_id=match.id
            )
            self.animals.update(
                tx,
                AnimalUpdate(ids=animal_ids, matched=True, pairing_count=1),
            )
            return removed

        try:
            removed = self.scope.run("approve match", _approve)
        except InfrastructureError:
            raise
        except PawMatchError as e:
            logger.warning(f"Approve match {proposal_id} rejected: {e}")
            raise

        logger.info(f"Approved match {proposal_id}; withdrew {removed} competing proposal(s)")

    def reject_match(self, match_id: Union[int, str], user_id: Optional[str] = None) -> None:
        """
        Reject a proposal. Animal pairing counts and matched flags are left as they are.

        Args:
            match_id: Proposal identifier
            user_id: Acting user; when given it must be the receiver
        """
        proposal_id = parse_id(match_id, "match id")

        def _reject(tx: Transaction) -> None:
            match = self.matches.get_by_id(tx, proposal_id, for_update=True)
            if match.resolved:
                raise MatchAlreadyResolved()
            if user_id is not None and match.receiver_user_id != user_id:
                raise NotReceiver()
            self.matches.mark_resolved(tx, match.id)

        try:
            self.scope.run("reject match", _reject)
        except InfrastructureError:
            raise
        except PawMatchError as e:
            logger.warning(f"Reject match {proposal_id} rejected: {e}")
            raise

        logger.info(f"Rejected match {proposal_id}")

    def delete_match(self, match_id: Union[int, str], user_id: str) -> None:
        """
        Withdraw an unresolved proposal issued by the requesting user.

        Removes the proposal and decrements both animals' pairing count.

        Args:
            match_id: Proposal identifier
            user_id: Requesting user, must be the issuer
        """
        proposal_id = parse_id(match_id, "match id")

        def _delete(tx: Transaction) -> None:
            match, locked = self._lock_proposal(tx, proposal_id, include_deleted=True)
            if match.resolved:
                raise MatchAlreadyResolved()
            if match.issuer_user_id != user_id:
                raise NotIssuer()
            if len(locked) != 2:
                raise AnimalNotFound(f"match {match.id} references a missing animal")

            for animal in locked:
                if animal.pairing_count < 1:
                    raise PairingCountUnderflow(
                        f"animal {animal.id} has pairing count {animal.pairing_count}"
                    )

            self.matches.delete_by_id(tx, match.id)
            self.animals.update(
                tx,
                AnimalUpdate(ids=match.animal_ids(), pairing_count_delta=-1),
            )

        try:
            self.scope.run("delete match", _delete)
        except InfrastructureError:
            raise
        except PairingCountUnderflow as e:
            logger.error(f"Delete match {proposal_id} aborted: {e}")
            raise
        except PawMatchError as e:
            logger.warning(f"Delete match {proposal_id} rejected: {e}")
            raise

        logger.info(f"Deleted match {proposal_id}")

    def list_matches(self, user_id: str) -> List[MatchDetail]:
        """
        List proposals the user issued or received, newest first.

        Args:
            user_id: Requesting user

        Returns:
            Proposal details with both animals
        """
        return self.scope.read(
            "list matches",
            lambda conn: self.matches.list_for_user(conn, user_id),
        )

    def _lock_proposal(
        self,
        tx: Transaction,
        match_id: int,
        include_deleted: bool = False
    ) -> tuple[Match, List[Animal]]:
        """
        Lock the proposal's animals (ascending id), then the proposal itself.

        Returns the locked proposal and whichever of its animals were found;
        callers decide what a missing animal means for them.
        """
        referenced = self.matches.get_by_id(tx, match_id).animal_ids()

        locked = self.animals.get_by_ids(
            tx, referenced, for_update=True, include_deleted=include_deleted
        )
        return self.matches.get_by_id(tx, match_id, for_update=True), locked
