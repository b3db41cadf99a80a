"""
Animal data models and schemas.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, HttpUrl, model_validator


class Sex(str, Enum):
    """Animal sex."""
    MALE = "male"
    FEMALE = "female"


class Animal(BaseModel):
    """Animal aggregate as persisted in the animals table."""

    # Identifiers
    id: int = Field(..., description="Store-assigned animal identifier")
    owner_id: str = Field(..., description="Owning user identifier")

    # Basic information
    name: str = Field(..., description="Animal name")
    breed: str = Field(..., description="Breed or race")
    sex: Sex = Field(..., description="Sex")
    age_in_months: int = Field(..., ge=1, description="Age in months")
    description: str = Field(default="", description="Listing description")
    image_urls: List[str] = Field(default_factory=list, description="Listing photos")

    # Matching state
    matched: bool = Field(default=False, description="Finalized pairing exists")
    pairing_count: int = Field(
        default=0,
        ge=0,
        description="Unresolved proposals referencing this animal (1 once matched)"
    )
    is_deleted: bool = Field(default=False, description="Soft-delete flag")

    # Metadata
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        json_schema_extra = {
            "example": {
                "id": 12,
                "owner_id": "42",
                "name": "Mochi",
                "breed": "Ragdoll",
                "sex": "female",
                "age_in_months": 18,
                "description": "Calm and affectionate.",
                "image_urls": ["https://example.com/mochi.jpg"],
                "matched": False,
                "pairing_count": 0
            }
        }


class AnimalCreate(BaseModel):
    """Fields supplied when listing a new animal."""

    name: str = Field(..., min_length=1, max_length=30)
    breed: str = Field(..., min_length=1, max_length=50)
    sex: Sex
    age_in_months: int = Field(..., ge=1, le=120082)
    description: str = Field(..., min_length=1, max_length=200)
    image_urls: List[HttpUrl] = Field(..., min_length=1)


class AnimalChanges(BaseModel):
    """User-editable subset of an animal listing. Absent fields stay untouched."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=30)
    breed: Optional[str] = Field(default=None, min_length=1, max_length=50)
    sex: Optional[Sex] = None
    age_in_months: Optional[int] = Field(default=None, ge=1, le=120082)
    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    image_urls: Optional[List[HttpUrl]] = Field(default=None, min_length=1)


class AnimalUpdate(BaseModel):
    """
    Partial update issued against the animal store.

    Only fields that are not None are written. ``pairing_count`` sets the count
    to an absolute value, ``pairing_count_delta`` adjusts it relative to the
    stored value; a single update carries at most one of the two.
    """

    ids: List[int] = Field(..., min_length=1)

    name: Optional[str] = None
    breed: Optional[str] = None
    sex: Optional[Sex] = None
    age_in_months: Optional[int] = None
    description: Optional[str] = None
    image_urls: Optional[List[str]] = None
    matched: Optional[bool] = None
    pairing_count: Optional[int] = Field(default=None, ge=0)
    pairing_count_delta: Optional[int] = None
    is_deleted: Optional[bool] = None

    @model_validator(mode="after")
    def _single_pairing_count_mode(self) -> "AnimalUpdate":
        if self.pairing_count is not None and self.pairing_count_delta is not None:
            raise ValueError("pairing_count and pairing_count_delta are mutually exclusive")
        return self

    def values(self) -> dict:
        """Column values to write, excluding ids and the relative delta."""
        return {
            key: value
            for key, value in self.model_dump(mode="json", exclude={"ids", "pairing_count_delta"}).items()
            if value is not None
        }
