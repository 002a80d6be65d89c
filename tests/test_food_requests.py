from datetime import datetime

from bson import ObjectId


def file_request(client, food_id, email="b@x.com", **extra):
    return client.post("/food-request", json={"foodId": food_id, "requesterEmail": email, **extra})


def test_create_sets_pending_and_timestamp(client, store, food_id):
    res = file_request(
        client, food_id,
        requesterName="Bea",
        status="delivered",
        createdAt="1999-01-01T00:00:00Z",
    )
    assert res.status_code == 200
    doc = store.food_requests.find_one({"_id": ObjectId(res.json()["id"])})
    assert doc["status"] == "pending"
    assert doc["foodId"] == ObjectId(food_id)
    assert isinstance(doc["createdAt"], datetime)
    assert doc["createdAt"].year != 1999
    assert doc["requesterName"] == "Bea"


def test_create_rejects_malformed_food_id(client, store):
    res = file_request(client, "not-a-food")
    assert res.status_code == 400
    assert store.food_requests.count_documents({}) == 0


def test_list_by_food_and_requester(client, food_id):
    other_food = str(ObjectId())
    file_request(client, food_id, "b@x.com")
    file_request(client, food_id, "c@x.com")
    file_request(client, other_food, "b@x.com")

    for_food = client.get(f"/food-request/{food_id}").json()
    assert sorted(r["requesterEmail"] for r in for_food) == ["b@x.com", "c@x.com"]
    assert all(r["foodId"] == food_id for r in for_food)

    mine = client.get("/my-request/b@x.com").json()
    assert len(mine) == 2

    assert len(client.get("/food-request").json()) == 3


def test_list_by_food_rejects_malformed_id(client):
    assert client.get("/food-request/abc").status_code == 400


def test_status_lifecycle(client, food_id):
    request_id = file_request(client, food_id).json()["id"]

    res = client.patch(f"/food-request/{request_id}", json={"status": "accepted"})
    assert res.status_code == 200
    assert res.json()["status"] == "accepted"

    res = client.patch(f"/food-request/{request_id}", json={"status": "Delivered"})
    assert res.json()["status"] == "delivered"


def test_terminal_status_cannot_go_back(client, food_id):
    request_id = file_request(client, food_id).json()["id"]
    client.patch(f"/food-request/{request_id}", json={"status": "delivered"})

    res = client.patch(f"/food-request/{request_id}", json={"status": "pending"})
    assert res.status_code == 409
    assert client.get(f"/food-request/{food_id}").json()[0]["status"] == "delivered"


def test_same_status_is_a_no_op(client, food_id):
    request_id = file_request(client, food_id).json()["id"]
    res = client.patch(f"/food-request/{request_id}", json={"status": "pending"})
    assert res.status_code == 200
    assert res.json()["status"] == "pending"


def test_unknown_status_is_rejected(client, food_id):
    request_id = file_request(client, food_id).json()["id"]
    res = client.patch(f"/food-request/{request_id}", json={"status": "shipped"})
    assert res.status_code == 422


def test_update_missing_request_is_not_found(client):
    res = client.patch(f"/food-request/{ObjectId()}", json={"status": "accepted"})
    assert res.status_code == 404
    assert client.patch("/food-request/bad", json={"status": "accepted"}).status_code == 400


def test_delete_request_leaves_listing_alone(client, store, food_id):
    request_id = file_request(client, food_id).json()["id"]
    assert client.delete(f"/food-request/{request_id}").json() == {"deletedCount": 1}
    assert client.delete(f"/food-request/{request_id}").json() == {"deletedCount": 0}
    food = client.get(f"/foods/{food_id}").json()
    assert food["food_quantity"] == 3
    assert food["food_status"] == "available"


def test_my_requests_with_mixed_case_domain(client, food_id):
    file_request(client, food_id, "b@X.com")
    assert len(client.get("/my-request/b@X.com").json()) == 1
    assert client.get("/user-stats/b@X.com").json()["totalRequests"] == 1
