"""
Plate Share services: users, food listings, food requests and stats.

Each service is built around a Store handle; routes stay thin and only
translate HTTP to these calls.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Optional

from pydantic import validate_email
from pydantic_core import PydanticCustomError
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from database import Store, to_oid, serialize, serialize_many
from errors import Conflict, InvalidArgument, InvalidTransition, NotFound
from schemas import (
    FoodIn,
    FoodListing,
    FoodRequest,
    FoodRequestIn,
    FoodRequestUpdate,
    FoodUpdate,
    QuantityUpdate,
    User,
    UserIn,
)

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "user"

# pending is the only initial status; rejected and delivered are final
REQUEST_TRANSITIONS = {
    "pending": {"accepted", "rejected", "delivered"},
    "accepted": {"delivered", "rejected"},
    "rejected": set(),
    "delivered": set(),
}


def _now():
    return datetime.now(timezone.utc)


def derive_food_status(quantity: int) -> str:
    return "donated" if quantity <= 0 else "available"


def coerce_quantity(value) -> int:
    """Turn user input into a quantity, rejecting anything that is not a whole number >= 0."""
    if isinstance(value, bool) or value is None:
        raise InvalidArgument("food_quantity must be a number")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise InvalidArgument(f"food_quantity must be a number, got {value!r}")
    elif isinstance(value, float):
        if math.isnan(value) or math.isinf(value) or not value.is_integer():
            raise InvalidArgument(f"food_quantity must be a whole number, got {value!r}")
        value = int(value)
    elif not isinstance(value, int):
        raise InvalidArgument("food_quantity must be a number")
    if value < 0:
        raise InvalidArgument("food_quantity cannot be negative")
    return value


def normalize_email(email: str) -> str:
    """Normalize a lookup key the way EmailStr normalized the stored address."""
    try:
        return validate_email(email)[1]
    except PydanticCustomError:
        return email


def check_transition(current: str, new: str):
    if current == new:
        return
    if new not in REQUEST_TRANSITIONS.get(current, set()):
        raise InvalidTransition(f"Cannot change request status from {current} to {new}")


# ------------------------- Users -------------------------

class UserRegistry:
    def __init__(self, store: Store):
        self.users = store.users

    def register(self, body: UserIn) -> str:
        # role is never taken from the caller; promotion is a separate call
        doc = User(**body.model_dump(), role=DEFAULT_ROLE).model_dump()
        try:
            res = self.users.insert_one(doc)
        except DuplicateKeyError:
            logger.warning("Registration rejected, %s already exists", body.email)
            raise Conflict("User already exists")
        logger.info("Registered user %s", res.inserted_id)
        return str(res.inserted_id)

    def list(self) -> list:
        return serialize_many(self.users.find())

    def get_role(self, email: str) -> str:
        user = self.users.find_one({"email": normalize_email(email)}, {"role": 1})
        role = (user or {}).get("role")
        return role.lower() if isinstance(role, str) and role else DEFAULT_ROLE

    def promote_to_admin(self, user_id: str) -> dict:
        oid = to_oid(user_id)
        res = self.users.update_one({"_id": oid}, {"$set": {"role": "admin"}})
        # matched, not modified: promoting an existing admin is a success
        if res.matched_count == 0:
            raise NotFound("User not found")
        logger.info("Promoted user %s to admin", user_id)
        return {"matchedCount": res.matched_count, "modifiedCount": res.modified_count}

    def delete(self, user_id: str) -> int:
        oid = to_oid(user_id)
        deleted = self.users.delete_one({"_id": oid}).deleted_count
        logger.info("Deleted user %s (%d removed)", user_id, deleted)
        return deleted


# ------------------------- Foods -------------------------

class FoodCatalog:
    def __init__(self, store: Store):
        self.foods = store.foods

    def create(self, body: FoodIn) -> str:
        if body.donator is None or not body.donator.email:
            raise InvalidArgument("Donator info missing")
        data = body.model_dump(exclude_none=True)
        data.setdefault("food_status", "available")
        doc = FoodListing(**data).model_dump()
        res = self.foods.insert_one(doc)
        logger.info("Added food %s for %s", res.inserted_id, body.donator.email)
        return str(res.inserted_id)

    def list(self, donator_email: Optional[str] = None) -> list:
        query = {}
        if donator_email:
            query = {"donator.email": normalize_email(donator_email)}
        return serialize_many(self.foods.find(query))

    def get(self, food_id: str) -> dict:
        food = self.foods.find_one({"_id": to_oid(food_id)})
        if food is None:
            raise NotFound("Food not found")
        return serialize(food)

    def update(self, food_id: str, body: FoodUpdate) -> dict:
        oid = to_oid(food_id)
        fields = body.model_dump(exclude_unset=True, exclude_none=True)
        if "food_quantity" in fields:
            fields["food_quantity"] = coerce_quantity(fields["food_quantity"])
            fields["food_status"] = derive_food_status(fields["food_quantity"])
        # donator fields are set one by one so a partial donator keeps the rest
        for key, value in fields.pop("donator", {}).items():
            fields[f"donator.{key}"] = value
        if not fields:
            return self.get(food_id)
        return self._set(oid, fields)

    def adjust_quantity(self, food_id: str, body: QuantityUpdate) -> dict:
        oid = to_oid(food_id)
        fields = body.model_dump(exclude_unset=True)
        quantity = coerce_quantity(fields["food_quantity"])
        fields["food_quantity"] = quantity
        fields["food_status"] = derive_food_status(quantity)
        return self._set(oid, fields)

    def _set(self, oid, fields: dict) -> dict:
        food = self.foods.find_one_and_update(
            {"_id": oid}, {"$set": fields}, return_document=ReturnDocument.AFTER
        )
        if food is None:
            raise NotFound("Food not found")
        logger.info("Updated food %s: %s", oid, ", ".join(sorted(fields)))
        return serialize(food)

    def delete(self, food_id: str) -> int:
        # pending requests against the listing are left in place
        oid = to_oid(food_id)
        deleted = self.foods.delete_one({"_id": oid}).deleted_count
        logger.info("Deleted food %s (%d removed)", food_id, deleted)
        return deleted


# ------------------------- Food requests -------------------------

class FoodRequestWorkflow:
    def __init__(self, store: Store):
        self.requests = store.food_requests

    def create(self, body: FoodRequestIn) -> str:
        oid = to_oid(body.foodId)
        doc = FoodRequest(**body.model_dump(), status="pending", createdAt=_now()).model_dump()
        doc["foodId"] = oid
        res = self.requests.insert_one(doc)
        logger.info("Request %s filed by %s for food %s", res.inserted_id, body.requesterEmail, oid)
        return str(res.inserted_id)

    def list_all(self) -> list:
        return serialize_many(self.requests.find())

    def list_by_food(self, food_id: str) -> list:
        return serialize_many(self.requests.find({"foodId": to_oid(food_id)}))

    def list_by_requester(self, email: str) -> list:
        return serialize_many(self.requests.find({"requesterEmail": normalize_email(email)}))

    def update_status(self, request_id: str, body: FoodRequestUpdate) -> dict:
        oid = to_oid(request_id)
        fields = body.model_dump(exclude_unset=True, exclude_none=True)
        current = self.requests.find_one({"_id": oid})
        # missing is NotFound; re-sending the current status is a no-op success
        if current is None:
            raise NotFound("Request not found")
        if "status" in fields:
            try:
                check_transition(current.get("status", "pending"), fields["status"])
            except InvalidTransition:
                logger.warning("Request %s: rejected %s -> %s", request_id, current.get("status"), fields["status"])
                raise
        if not fields:
            return serialize(current)
        # the status filter keeps a concurrent change from being overwritten
        updated = self.requests.find_one_and_update(
            {"_id": oid, "status": current.get("status")},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise Conflict("Request was changed by someone else, reload and retry")
        logger.info("Updated request %s: %s", request_id, fields)
        return serialize(updated)

    def delete(self, request_id: str) -> int:
        oid = to_oid(request_id)
        deleted = self.requests.delete_one({"_id": oid}).deleted_count
        logger.info("Deleted request %s (%d removed)", request_id, deleted)
        return deleted


# ------------------------- Stats -------------------------

class Stats:
    def __init__(self, store: Store):
        self.store = store

    def user_stats(self, email: str) -> dict:
        email = normalize_email(email)
        return {
            "totalAdded": self.store.foods.count_documents({"donator.email": email}),
            "totalRequests": self.store.food_requests.count_documents({"requesterEmail": email}),
        }

    def admin_stats(self) -> dict:
        return {
            "totalUsers": self.store.users.count_documents({}),
            "totalFoods": self.store.foods.count_documents({}),
            "totalRequests": self.store.food_requests.count_documents({}),
            "completedDonations": self.store.food_requests.count_documents({"status": "delivered"}),
        }
