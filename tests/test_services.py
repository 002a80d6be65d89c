import math

import pytest

from database import to_oid, serialize
from errors import Conflict, InvalidArgument, InvalidTransition
from schemas import UserIn
from services import (
    REQUEST_TRANSITIONS,
    UserRegistry,
    check_transition,
    coerce_quantity,
    derive_food_status,
)


@pytest.mark.parametrize("quantity,status", [(0, "donated"), (-2, "donated"), (1, "available"), (40, "available")])
def test_derive_food_status(quantity, status):
    assert derive_food_status(quantity) == status


@pytest.mark.parametrize("value,expected", [(5, 5), ("7", 7), (" 0 ", 0), (3.0, 3)])
def test_coerce_quantity(value, expected):
    assert coerce_quantity(value) == expected


@pytest.mark.parametrize("value", ["abc", "", None, True, 2.5, math.nan, math.inf, -1, [1]])
def test_coerce_quantity_rejects(value):
    with pytest.raises(InvalidArgument):
        coerce_quantity(value)


def test_terminal_statuses_have_no_exits():
    assert REQUEST_TRANSITIONS["delivered"] == set()
    assert REQUEST_TRANSITIONS["rejected"] == set()
    with pytest.raises(InvalidTransition):
        check_transition("rejected", "accepted")
    with pytest.raises(Conflict):
        check_transition("accepted", "pending")
    check_transition("accepted", "accepted")


def test_to_oid_rejects_malformed():
    for bad in ["", "xyz", "0" * 23, None, 42]:
        with pytest.raises(InvalidArgument):
            to_oid(bad)


def test_serialize_renames_id(store):
    res = store.foods.insert_one({"food_name": "Soup"})
    doc = serialize(store.foods.find_one({"_id": res.inserted_id}))
    assert doc == {"id": str(res.inserted_id), "food_name": "Soup"}
    assert serialize(None) is None


def test_unique_email_is_enforced_by_index(store):
    users = UserRegistry(store)
    users.register(UserIn(name="A", email="a@x.com"))
    with pytest.raises(Conflict):
        users.register(UserIn(name="A2", email="a@x.com"))
    assert store.users.count_documents({}) == 1
