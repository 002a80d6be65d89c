"""
Database Schemas for Plate Share (MongoDB collections)

Each collection model describes one stored document:
- User -> "users"
- FoodListing -> "foods"
- FoodRequest -> "food-requests"

The *In / *Update models are the request bodies accepted by the API.
"""

from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional, Literal
from datetime import datetime

Role = Literal["user", "admin"]
FoodStatus = Literal["available", "donated"]
RequestStatus = Literal["pending", "accepted", "rejected", "delivered"]


def _lower(v):
    return v.strip().lower() if isinstance(v, str) else v


# ------------------------- Users -------------------------

class User(BaseModel):
    name: str
    email: EmailStr
    image: Optional[str] = None
    role: Role = "user"


class UserIn(BaseModel):
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Email address (unique)")
    image: Optional[str] = Field(None, description="Avatar URL")


# ------------------------- Foods -------------------------

class Donator(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    image: Optional[str] = None


class FoodListing(BaseModel):
    donator: Donator
    food_name: str
    food_image: Optional[str] = None
    food_quantity: int = Field(..., ge=0)
    pickup_location: Optional[str] = None
    expire_date: Optional[str] = None
    additional_notes: Optional[str] = None
    food_status: FoodStatus = "available"


class FoodIn(BaseModel):
    # donator is checked by the catalog so a missing email is a 400, not a 422
    donator: Optional[Donator] = None
    food_name: str
    food_image: Optional[str] = None
    food_quantity: int = Field(..., ge=0)
    pickup_location: Optional[str] = None
    expire_date: Optional[str] = None
    additional_notes: Optional[str] = None
    food_status: Optional[FoodStatus] = None

    @field_validator("food_status", mode="before")
    @classmethod
    def lower_status(cls, v):
        return _lower(v)


class FoodUpdate(BaseModel):
    """Generic partial update; only the fields sent are written."""
    donator: Optional[Donator] = None
    food_name: Optional[str] = None
    food_image: Optional[str] = None
    food_quantity: Optional[int] = None
    pickup_location: Optional[str] = None
    expire_date: Optional[str] = None
    additional_notes: Optional[str] = None
    food_status: Optional[FoodStatus] = None

    @field_validator("food_status", mode="before")
    @classmethod
    def lower_status(cls, v):
        return _lower(v)


class QuantityUpdate(BaseModel):
    """Quantity edit from the "update food" form; status is derived, never sent."""
    food_quantity: int
    food_name: Optional[str] = None
    food_image: Optional[str] = None
    pickup_location: Optional[str] = None
    expire_date: Optional[str] = None
    additional_notes: Optional[str] = None


# ------------------------- Food requests -------------------------

class FoodRequest(BaseModel):
    foodId: str
    requesterEmail: EmailStr
    requesterName: Optional[str] = None
    requesterImage: Optional[str] = None
    location: Optional[str] = None
    reason: Optional[str] = None
    contactNo: Optional[str] = None
    status: RequestStatus = "pending"
    createdAt: Optional[datetime] = None


class FoodRequestIn(BaseModel):
    # status and createdAt are not accepted here; they are set by the server
    foodId: str
    requesterEmail: EmailStr
    requesterName: Optional[str] = None
    requesterImage: Optional[str] = None
    location: Optional[str] = None
    reason: Optional[str] = None
    contactNo: Optional[str] = None


class FoodRequestUpdate(BaseModel):
    status: Optional[RequestStatus] = None
    location: Optional[str] = None
    reason: Optional[str] = None
    contactNo: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def lower_status(cls, v):
        return _lower(v)
