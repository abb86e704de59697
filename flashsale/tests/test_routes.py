from datetime import datetime, timedelta, timezone
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError
from flashsale.redis.keys import stock_key, user_purchase_key
from flashsale.services.purchase_ledger import purchase_ledger


def _window(starts_in=timedelta(minutes=-5), lasts=timedelta(hours=1)):
    now = datetime.now(timezone.utc)
    return {"startTime": (now + starts_in).isoformat(), "endTime": (now + starts_in + lasts).isoformat()}


async def _create(client, total_stock=5, **window):
    response = await client.post("/api/v1/flashsale", json={
        "productName": "Limited Edition Gaming Headset",
        "totalStock": total_stock,
        **_window(**window),
    })
    assert response.status_code == 201, response.text
    return response.json()


async def test_root_and_health(client):
    assert (await client.get("/")).json() == {"message": "Flash sale api backend"}
    health = (await client.get("/api/v1/health")).json()
    assert health["status"] == "ok"
    assert "timestamp" in health


async def test_create_and_read_status(client):
    sale = await _create(client, total_stock=5)
    assert sale["status"] == "active"
    assert sale["remainingStock"] == 5
    assert sale["maxPurchasePerUser"] == 1

    response = await client.get(f"/api/v1/flashsale/status/{sale['id']}")
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == sale["id"]
    assert body["productName"] == "Limited Edition Gaming Headset"
    assert body["remainingStock"] == 5
    assert body["totalStock"] == 5
    assert body["timeUntilEnd"] > 0
    assert "timeUntilStart" not in body


async def test_upcoming_status_has_time_until_start(client):
    sale = await _create(client, starts_in=timedelta(hours=1))
    body = (await client.get(f"/api/v1/flashsale/status/{sale['id']}")).json()
    assert body["status"] == "upcoming"
    assert 0 < body["timeUntilStart"] <= 3_600_000
    assert "timeUntilEnd" not in body


async def test_status_not_found(client):
    response = await client.get("/api/v1/flashsale/status/unknown")
    assert response.status_code == 404
    assert response.json() == {"error": "Flash sale not found"}


async def test_create_rejects_bad_input(client):
    response = await client.post("/api/v1/flashsale", json={
        "productName": "Backwards", "totalStock": 5, **_window(lasts=timedelta(hours=-1))})
    assert response.status_code == 400

    response = await client.post("/api/v1/flashsale", json={
        "productName": "Negative", "totalStock": -1, **_window()})
    assert response.status_code == 400


async def test_purchase_flow(client):
    sale = await _create(client, total_stock=2)

    response = await client.post("/api/v1/flashsale/purchase", json={"userId": "alice", "flashSaleId": sale["id"]})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Purchase successful!"
    assert body["remainingStock"] == 1
    purchase_id = body["purchaseId"]

    response = await client.post("/api/v1/flashsale/purchase", json={"userId": "alice", "flashSaleId": sale["id"]})
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "You have already purchased this item",
                               "reason": "already_purchased"}

    status = (await client.get(f"/api/v1/flashsale/user/alice/purchase/{sale['id']}")).json()
    assert status["hasPurchased"] is True
    assert status["purchase"]["id"] == purchase_id
    assert status["purchase"]["flashSaleId"] == sale["id"]
    assert status["purchase"]["status"] == "confirmed"

    status = (await client.get(f"/api/v1/flashsale/user/bob/purchase/{sale['id']}")).json()
    assert status == {"hasPurchased": False}

    purchase = (await client.get(f"/api/v1/flashsale/purchases/{purchase_id}")).json()
    assert purchase["userId"] == "alice"
    assert (await client.get("/api/v1/flashsale/purchases/unknown")).status_code == 404


async def test_purchase_before_start(client):
    sale = await _create(client, starts_in=timedelta(hours=1))
    response = await client.post("/api/v1/flashsale/purchase", json={"userId": "alice", "flashSaleId": sale["id"]})
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Sale has not started yet", "reason": "not_started"}


async def test_purchase_sold_out(client):
    sale = await _create(client, total_stock=1)
    first = await client.post("/api/v1/flashsale/purchase", json={"userId": "alice", "flashSaleId": sale["id"]})
    assert first.json()["remainingStock"] == 0
    second = await client.post("/api/v1/flashsale/purchase", json={"userId": "bob", "flashSaleId": sale["id"]})
    assert second.status_code == 400
    assert second.json()["reason"] == "sold_out"


async def test_purchase_unknown_sale(client):
    response = await client.post("/api/v1/flashsale/purchase", json={"userId": "alice", "flashSaleId": "nope"})
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Flash sale not found"}


async def test_purchase_requires_fields(client):
    response = await client.post("/api/v1/flashsale/purchase", json={"flashSaleId": "sale"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


async def test_list_latest_and_delete(client):
    assert (await client.get("/api/v1/flashsale/all")).json() == []
    assert (await client.get("/api/v1/flashsale/latest-active")).status_code == 404

    ended = await _create(client, starts_in=timedelta(hours=-3), lasts=timedelta(hours=1))
    active = await _create(client)

    listed = (await client.get("/api/v1/flashsale/all")).json()
    assert [s["id"] for s in listed] == [active["id"], ended["id"]]
    assert (await client.get("/api/v1/flashsale/latest-active")).json()["id"] == active["id"]

    response = await client.post("/api/v1/flashsale/delete", json={"id": active["id"]})
    assert response.status_code == 200
    assert response.json()["deleted"] is True
    response = await client.post("/api/v1/flashsale/delete", json={"id": active["id"]})
    assert response.status_code == 404


async def test_delete_expired(client):
    ended = await _create(client, starts_in=timedelta(hours=-3), lasts=timedelta(hours=1))
    active = await _create(client)

    response = await client.post("/api/v1/flashsale/delete-expired")
    assert response.json() == {"deleted": 1}
    listed = (await client.get("/api/v1/flashsale/all")).json()
    assert [s["id"] for s in listed] == [active["id"]]
    assert (await client.get(f"/api/v1/flashsale/status/{ended['id']}")).status_code == 404


async def test_readiness(client, redis_client, monkeypatch):
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json()["redis"] == "up"

    async def failing_ping(*args, **kwargs):
        raise RedisConnectionError("Connection refused")

    monkeypatch.setattr(redis_client, "ping", failing_ping)
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 503
    assert response.json()["status"] == "unavailable"


async def test_negative_counter_is_a_server_error(client, redis_client):
    sale = await _create(client, total_stock=5)
    await redis_client.set(stock_key(sale["id"]), -1)

    status = await client.get(f"/api/v1/flashsale/status/{sale['id']}")
    assert status.status_code == 500
    assert "negative" in status.json()["error"]

    purchase = await client.post("/api/v1/flashsale/purchase", json={"userId": "alice", "flashSaleId": sale["id"]})
    assert purchase.status_code == 500
    assert "negative" in purchase.json()["error"]

    listed = await client.get("/api/v1/flashsale/all")
    assert listed.status_code == 500


async def test_redis_failure_is_a_server_error(client, redis_client, monkeypatch):
    sale = await _create(client)

    async def failing_mget(*args, **kwargs):
        raise RedisConnectionError("Connection reset by peer")

    monkeypatch.setattr(redis_client, "mget", failing_mget)
    response = await client.get(f"/api/v1/flashsale/status/{sale['id']}")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


async def test_ledger_failure_is_a_server_error_and_keeps_stock(client, redis_client, monkeypatch):
    sale = await _create(client, total_stock=3)

    async def failing_stage(*args, **kwargs):
        raise OperationalError("INSERT INTO purchase", {}, Exception("database is down"))

    monkeypatch.setattr(purchase_ledger, "stage", failing_stage)
    response = await client.post("/api/v1/flashsale/purchase", json={"userId": "alice", "flashSaleId": sale["id"]})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert int(await redis_client.get(stock_key(sale["id"]))) == 3
    assert await redis_client.get(user_purchase_key(sale["id"], "alice")) is None

    monkeypatch.undo()
    response = await client.post("/api/v1/flashsale/purchase", json={"userId": "alice", "flashSaleId": sale["id"]})
    assert response.status_code == 200
    assert response.json()["remainingStock"] == 2
