"""
MongoDB access for Plate Share.

A single Store owns the MongoClient for the life of the process. It is
created once at startup and handed to every service.
"""

import logging
import os
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from dotenv import load_dotenv
from pymongo import ASCENDING, MongoClient
from pymongo.errors import PyMongoError

from errors import InvalidArgument, Unavailable

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DB_USER = os.getenv("DB_USER")
DB_PASS = os.getenv("DB_PASS")
DB_HOST = os.getenv("DB_HOST", "cluster0.sugbz4l.mongodb.net")
DATABASE_NAME = os.getenv("DATABASE_NAME", "plate_share_DB")
DB_TIMEOUT_MS = int(os.getenv("DB_TIMEOUT_MS", 5000))

USERS = "users"
FOODS = "foods"
FOOD_REQUESTS = "food-requests"


class Store:
    def __init__(self, client, name: str = DATABASE_NAME):
        self.client = client
        self.db = client[name]

    @property
    def users(self):
        return self.db[USERS]

    @property
    def foods(self):
        return self.db[FOODS]

    @property
    def food_requests(self):
        return self.db[FOOD_REQUESTS]

    def ping(self):
        self.client.admin.command("ping")

    def ensure_indexes(self):
        self.users.create_index([("email", ASCENDING)], unique=True)
        self.foods.create_index([("donator.email", ASCENDING)])
        self.food_requests.create_index([("foodId", ASCENDING)])
        self.food_requests.create_index([("requesterEmail", ASCENDING)])

    def close(self):
        self.client.close()


def database_uri() -> Optional[str]:
    if DATABASE_URL:
        return DATABASE_URL
    if DB_USER and DB_PASS:
        return f"mongodb+srv://{DB_USER}:{DB_PASS}@{DB_HOST}/?appName=Cluster0"
    return None


def connect() -> Store:
    """Open the shared client and make sure the server answers.

    Raises Unavailable when no connection target is configured or the
    server cannot be reached; the process must not serve traffic then.
    """
    uri = database_uri()
    if not uri:
        raise Unavailable("Database not configured: set DATABASE_URL or DB_USER/DB_PASS")
    client = MongoClient(
        uri,
        serverSelectionTimeoutMS=DB_TIMEOUT_MS,
        connectTimeoutMS=DB_TIMEOUT_MS,
        socketTimeoutMS=DB_TIMEOUT_MS,
    )
    store = Store(client, DATABASE_NAME)
    try:
        store.ping()
        store.ensure_indexes()
    except PyMongoError as e:
        client.close()
        raise Unavailable(f"Failed to connect to MongoDB: {e}") from e
    logger.info("Connected to MongoDB database %s", DATABASE_NAME)
    return store


# ------------------------- helpers -------------------------

def to_oid(val) -> ObjectId:
    if isinstance(val, ObjectId):
        return val
    if not isinstance(val, str):
        raise InvalidArgument("Invalid ID")
    try:
        return ObjectId(val)
    except (InvalidId, TypeError):
        raise InvalidArgument(f"Invalid ID: {val}")


def serialize(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    out = dict(doc)
    oid = out.pop("_id", None)
    if oid is not None:
        out["id"] = str(oid)
    if isinstance(out.get("foodId"), ObjectId):
        out["foodId"] = str(out["foodId"])
    return out


def serialize_many(cursor) -> list:
    return [serialize(d) for d in cursor]
