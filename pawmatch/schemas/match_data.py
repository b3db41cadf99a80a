"""
Match proposal data models and schemas.
"""

from datetime import datetime, timezone
from pydantic import BaseModel, Field

from .animal_data import Animal


class Match(BaseModel):
    """Proposal row pairing an issuer animal with a receiver animal."""

    id: int = Field(..., description="Proposal identifier")
    issuer_user_id: str = Field(..., description="User who proposed the pairing")
    receiver_user_id: str = Field(..., description="Owner of the receiver animal")
    issuer_animal_id: int = Field(..., description="Animal owned by the issuer")
    receiver_animal_id: int = Field(..., description="Animal owned by the receiver")
    message: str = Field(default="", description="Free-text note from the issuer")
    resolved: bool = Field(default=False, description="True once approved or rejected")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def animal_ids(self) -> list[int]:
        """Both referenced animal ids in lock order."""
        return sorted([self.issuer_animal_id, self.receiver_animal_id])


class MatchDetail(BaseModel):
    """Proposal with both referenced animals, as shown to either party."""

    id: int
    message: str
    resolved: bool
    created_at: datetime
    issuer_user_id: str
    receiver_user_id: str
    issuer_animal: Animal
    receiver_animal: Animal

    def own_and_other(self, user_id: str) -> tuple[Animal, Animal]:
        """Return (user's animal, counterpart animal) from the viewer's side."""
        if self.issuer_user_id == user_id:
            return self.issuer_animal, self.receiver_animal
        return self.receiver_animal, self.issuer_animal
