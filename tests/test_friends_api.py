"""
Endpoint tests for the friend request / friends list routes.
"""

from bson import ObjectId


async def _send(client, auth_headers, sender, recipient):
    return await client.post(
        "/friend-request",
        json={"senderId": str(sender), "recipientId": str(recipient)},
        headers=auth_headers(sender),
    )


async def _accept(client, auth_headers, request_id, user):
    return await client.post(
        "/accept-friend-request",
        json={"requestId": request_id, "userId": str(user)},
        headers=auth_headers(user),
    )


async def _friends(client, auth_headers, user):
    return await client.get("/friends", params={"userId": str(user)}, headers=auth_headers(user))


async def test_send_request(client, auth_headers, make_user):
    a, b = await make_user(), await make_user()

    response = await _send(client, auth_headers, a, b)

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Friend request sent successfully"
    assert ObjectId.is_valid(body["requestId"])


async def test_send_request_twice_is_conflict(client, db, auth_headers, make_user):
    a, b = await make_user(), await make_user()
    await _send(client, auth_headers, a, b)

    response = await _send(client, auth_headers, a, b)

    assert response.status_code == 409
    assert response.json()["code"] == "duplicate_request"
    assert await db["friend_requests"].count_documents({}) == 1


async def test_send_request_missing_ids(client, auth_headers, make_user):
    a = await make_user()

    response = await client.post("/friend-request", json={"senderId": str(a)}, headers=auth_headers(a))

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_input"


async def test_send_request_malformed_id(client, auth_headers, make_user):
    a = await make_user()

    response = await client.post(
        "/friend-request", json={"senderId": str(a), "recipientId": "42"}, headers=auth_headers(a)
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_input"


async def test_send_request_unknown_user(client, auth_headers, make_user):
    a = await make_user()

    response = await _send(client, auth_headers, a, ObjectId())

    assert response.status_code == 404


async def test_friend_routes_require_token(client, db, make_user):
    a, b = await make_user(), await make_user()

    response = await client.post("/friend-request", json={"senderId": str(a), "recipientId": str(b)})

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "No token provided"}
    assert await db["friend_requests"].count_documents({}) == 0


async def test_cannot_send_on_behalf_of_another_user(client, db, auth_headers, make_user):
    a, b, mallory = await make_user(), await make_user(), await make_user()

    response = await client.post(
        "/friend-request",
        json={"senderId": str(a), "recipientId": str(b)},
        headers=auth_headers(mallory),
    )

    assert response.status_code == 403
    assert await db["friend_requests"].count_documents({}) == 0


async def test_cannot_accept_or_unfriend_for_another_user(client, db, auth_headers, make_user):
    a, b, mallory = await make_user(), await make_user(), await make_user()
    request_id = (await _send(client, auth_headers, a, b)).json()["requestId"]

    accepted = await client.post(
        "/accept-friend-request",
        json={"requestId": request_id, "userId": str(b)},
        headers=auth_headers(mallory),
    )
    assert accepted.status_code == 403
    assert (await db["friend_requests"].find_one({"_id": ObjectId(request_id)}))["status"] == "pending"

    await _accept(client, auth_headers, request_id, b)
    unfriended = await client.post(
        "/unfriend", json={"userId": str(a), "friendId": str(b)}, headers=auth_headers(mallory)
    )
    assert unfriended.status_code == 403
    assert [f["id"] for f in (await _friends(client, auth_headers, a)).json()] == [str(b)]


async def test_cannot_read_another_users_lists(client, auth_headers, make_user):
    a, mallory = await make_user(), await make_user()

    friends = await client.get("/friends", params={"userId": str(a)}, headers=auth_headers(mallory))
    incoming = await client.get("/friend-requests", params={"userId": str(a)}, headers=auth_headers(mallory))

    assert friends.status_code == 403
    assert incoming.status_code == 403


async def test_accept_flow(client, auth_headers, make_user):
    a, b = await make_user("alice"), await make_user("bob")
    request_id = (await _send(client, auth_headers, a, b)).json()["requestId"]

    incoming = await client.get("/friend-requests", params={"userId": str(b)}, headers=auth_headers(b))
    assert incoming.status_code == 200
    [item] = incoming.json()
    assert item["id"] == request_id
    assert item["sender"] == {"id": str(a), "name": "alice", "email": "alice@example.com"}

    accepted = await _accept(client, auth_headers, request_id, b)
    assert accepted.status_code == 200
    assert accepted.json() == {"message": "Friend request accepted"}

    again = await _accept(client, auth_headers, request_id, b)
    assert again.status_code == 404
    assert again.json()["code"] == "not_found"

    friends_a = (await _friends(client, auth_headers, a)).json()
    friends_b = (await _friends(client, auth_headers, b)).json()
    assert [f["id"] for f in friends_a] == [str(b)]
    assert [f["id"] for f in friends_b] == [str(a)]

    remaining = await client.get("/friend-requests", params={"userId": str(b)}, headers=auth_headers(b))
    assert remaining.json() == []


async def test_accept_missing_request_id(client, auth_headers, make_user):
    b = await make_user()

    response = await client.post("/accept-friend-request", json={"userId": str(b)}, headers=auth_headers(b))

    assert response.status_code == 400


async def test_reject_flow(client, db, auth_headers, make_user):
    a, b = await make_user(), await make_user()
    request_id = (await _send(client, auth_headers, a, b)).json()["requestId"]

    response = await client.post(
        "/reject-friend-request", json={"requestId": request_id, "userId": str(b)}, headers=auth_headers(b)
    )

    assert response.status_code == 200
    assert (await _friends(client, auth_headers, a)).json() == []
    user_a = await db["users"].find_one({"_id": a})
    assert user_a["pending_peers"] == []

    missing = await client.post(
        "/reject-friend-request", json={"requestId": request_id, "userId": str(b)}, headers=auth_headers(b)
    )
    assert missing.status_code == 404


async def test_friend_requests_invalid_user(client, auth_headers, make_user):
    a = await make_user()

    response = await client.get("/friend-requests", params={"userId": "abc"}, headers=auth_headers(a))

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_input"


async def test_friends_of_deleted_caller(client, db, auth_headers, make_user):
    a = await make_user()
    headers = auth_headers(a)
    await db["users"].delete_one({"_id": a})

    response = await client.get("/friends", params={"userId": str(a)}, headers=headers)

    assert response.status_code == 401


async def test_friends_missing_user_id(client, auth_headers, make_user):
    a = await make_user()

    response = await client.get("/friends", headers=auth_headers(a))

    assert response.status_code == 400


async def test_unfriend_is_idempotent(client, auth_headers, make_user):
    a, b = await make_user(), await make_user()
    request_id = (await _send(client, auth_headers, a, b)).json()["requestId"]
    await _accept(client, auth_headers, request_id, b)

    first = await client.post("/unfriend", json={"userId": str(a), "friendId": str(b)}, headers=auth_headers(a))
    second = await client.post("/unfriend", json={"userId": str(a), "friendId": str(b)}, headers=auth_headers(a))

    assert first.status_code == 200
    assert second.status_code == 200
    assert (await _friends(client, auth_headers, a)).json() == []
    assert (await _friends(client, auth_headers, b)).json() == []


async def test_unfriend_missing_ids(client, auth_headers, make_user):
    a = await make_user()

    response = await client.post("/unfriend", json={"userId": str(a)}, headers=auth_headers(a))

    assert response.status_code == 400


async def test_already_friends_cannot_request_again(client, auth_headers, make_user):
    a, b = await make_user(), await make_user()
    request_id = (await _send(client, auth_headers, a, b)).json()["requestId"]
    await _accept(client, auth_headers, request_id, b)

    response = await _send(client, auth_headers, b, a)

    assert response.status_code == 409


async def test_reconcile_endpoint(client, db, auth_headers, make_user):
    a, b = await make_user(), await make_user()
    await _send(client, auth_headers, a, b)
    await db["users"].update_one({"_id": a}, {"$set": {"pending_peers": []}})

    response = await client.post("/friend-requests/reconcile", json={"userId": str(a)}, headers=auth_headers(a))

    assert response.status_code == 200
    assert response.json() == {"pendingPeers": [str(b)]}
