"""
Transaction scope for PawMatch.

A unit of work is a callable that receives the open transaction handle and
passes it explicitly to every store call it makes. Nothing about the active
transaction is kept in module or thread-local state.
"""

from typing import Callable, Optional, TypeVar
from loguru import logger
from sqlalchemy import Connection, Engine, text
from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings, get_settings
from ..errors import InfrastructureError

T = TypeVar("T")

# The handle passed to units of work and store calls
Transaction = Connection


class TransactionScope:
    """
    Runs units of work atomically against a SQLAlchemy engine.

    Commits when the unit of work returns and rolls back when it raises.
    Domain errors propagate unchanged; SQLAlchemy errors (lock wait timeouts,
    serialization failures, lost connections) are wrapped in
    InfrastructureError with the operation name attached. There is no retry.
    """

    def __init__(self, engine: Engine, settings: Optional[Settings] = None):
        """
        Initialize the transaction scope.

        Args:
            engine: Engine to open connections from
            settings: Application settings (defaults to the global instance)
        """
        self.engine = engine
        self.settings = settings or get_settings()

    def run(self, operation: str, unit_of_work: Callable[[Transaction], T]) -> T:
        """
        Execute a unit of work inside one transaction.

        Args:
            operation: Operation name used as error and log context
            unit_of_work: Callable receiving the transaction handle

        Returns:
            Whatever the unit of work returns
        """
        try:
            with self.engine.begin() as tx:
                self._apply_lock_timeout(tx)
                return unit_of_work(tx)
        except SQLAlchemyError as e:
            logger.exception(f"{operation}: transaction failed")
            raise InfrastructureError(f"{operation}: {e}") from e

    def read(self, operation: str, query: Callable[[Transaction], T]) -> T:
        """
        Execute a read-only query outside an explicit transaction. No locks are taken.

        Args:
            operation: Operation name used as error and log context
            query: Callable receiving the connection

        Returns:
            Whatever the query returns
        """
        try:
            with self.engine.connect() as conn:
                return query(conn)
        except SQLAlchemyError as e:
            logger.exception(f"{operation}: read failed")
            raise InfrastructureError(f"{operation}: {e}") from e

    def _apply_lock_timeout(self, tx: Transaction) -> None:
        """Bound lock waits for the current transaction (PostgreSQL only)."""
        if tx.dialect.name != "postgresql" or self.settings.lock_timeout_ms <= 0:
            return
        tx.execute(text(f"SET LOCAL lock_timeout = {int(self.settings.lock_timeout_ms)}"))
