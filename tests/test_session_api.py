from __future__ import annotations

import pytest


@pytest.fixture()
def client(client_and_redis):
    c, _ = client_and_redis
    return c


def _new_session(client) -> str:
    resp = client.post("/sessions")
    assert resp.status_code == 201
    return resp.json()["session_id"]


def test_create_and_get_session(client, clock) -> None:
    resp = client.post("/sessions")
    assert resp.status_code == 201
    data = resp.json()

    assert data["persisted"] is True
    assert data["state"] == {
        "points": 0.0,
        "click_power": 1,
        "producer_owned": {"autoPurr": 0, "catnipFarm": 0, "laserFactory": 0, "meowTeam": 0},
        "last_update": clock.now,
    }
    assert data["snapshot"]["click_upgrade_price"] == 50

    resp2 = client.get(f"/sessions/{data['session_id']}")
    assert resp2.status_code == 200
    assert resp2.json()["state"] == data["state"]

    listed = client.get("/sessions").json()["sessions"]
    assert listed == [data["session_id"]]


def test_get_unknown_session_404(client) -> None:
    resp = client.get("/sessions/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404

    resp2 = client.post("/sessions/00000000-0000-0000-0000-000000000000/click")
    assert resp2.status_code == 404


def test_click_and_buy_flow(client, clock) -> None:
    sid = _new_session(client)

    rejected = client.post(f"/sessions/{sid}/buy/autoPurr")
    assert rejected.status_code == 200
    body = rejected.json()
    assert body["outcome"] == {"kind": "insufficient_funds", "ok": False, "price": 10, "points": 0.0}
    assert body["state"]["producer_owned"]["autoPurr"] == 0

    for _ in range(10):
        clicked = client.post(f"/sessions/{sid}/click")
        assert clicked.json()["outcome"] == {"kind": "clicked", "ok": True, "granted": 1}
    assert clicked.json()["state"]["points"] == 10

    bought = client.post(f"/sessions/{sid}/buy/autoPurr").json()
    assert bought["outcome"]["kind"] == "purchased"
    assert bought["outcome"]["next_price"] == 11
    assert bought["state"]["points"] == 0
    assert bought["state"]["producer_owned"]["autoPurr"] == 1
    assert bought["snapshot"]["producers"][0]["price"] == 11

    clock.advance(10_000)
    ticked = client.post(f"/sessions/{sid}/tick").json()
    assert ticked["outcome"]["gain"] == 1.0
    assert ticked["state"]["points"] == 1.0
    assert ticked["state"]["last_update"] == clock.now


def test_upgrade_reset_and_save(client) -> None:
    sid = _new_session(client)
    for _ in range(50):
        client.post(f"/sessions/{sid}/click")

    upgraded = client.post(f"/sessions/{sid}/upgrade").json()
    assert upgraded["outcome"] == {
        "kind": "click_power_upgraded",
        "ok": True,
        "click_power": 2,
        "price": 50,
        "next_price": 100,
    }
    assert upgraded["snapshot"]["click_upgrade_price"] == 100

    saved = client.post(f"/sessions/{sid}/save").json()
    assert saved["outcome"]["kind"] == "saved"
    assert saved["persisted"] is True

    reset = client.post(f"/sessions/{sid}/reset").json()
    assert reset["outcome"]["kind"] == "reset"
    assert reset["state"]["points"] == 0
    assert reset["state"]["click_power"] == 1

    assert client.get(f"/sessions/{sid}").json()["state"] == reset["state"]


def test_unknown_producer_404(client) -> None:
    sid = _new_session(client)
    resp = client.post(f"/sessions/{sid}/buy/laserCannon")
    assert resp.status_code == 404
    assert "laserCannon" in resp.json()["detail"]


def test_generic_command_route(client) -> None:
    sid = _new_session(client)

    resp = client.post(f"/sessions/{sid}/commands/click")
    assert resp.status_code == 200
    assert resp.json()["outcome"]["kind"] == "clicked"

    resp2 = client.post(f"/sessions/{sid}/commands/buy", json={"producer_id": "autoPurr"})
    assert resp2.status_code == 200
    assert resp2.json()["outcome"]["kind"] == "insufficient_funds"

    resp3 = client.post(f"/sessions/{sid}/commands/prestige")
    assert resp3.status_code == 422

    resp4 = client.post(f"/sessions/{sid}/commands/buy", json={})
    assert resp4.status_code == 422


def test_busy_session_409(client_and_redis) -> None:
    client, r = client_and_redis
    sid = _new_session(client)
    r.set(f"lock:session:{sid}", "1")

    resp = client.post(f"/sessions/{sid}/click")
    assert resp.status_code == 409


def test_producers_and_health(client) -> None:
    producers = client.get("/producers").json()["producers"]
    assert [p["id"] for p in producers] == ["autoPurr", "catnipFarm", "laserFactory", "meowTeam"]
    assert producers[0]["base_rate"] == 0.1

    assert client.get("/healthcheck").json() == {"status": "ok", "store": "ok"}
    assert client.get("/info").json()["name"] == "catclicker"


def test_store_outage_reported_not_fatal(client, broken_redis) -> None:
    from catclicker.api.deps import get_redis
    from catclicker.main import app

    app.dependency_overrides[get_redis] = lambda: broken_redis

    assert client.get("/healthcheck").json() == {"status": "ok", "store": "unavailable"}

    created = client.post("/sessions")
    assert created.status_code == 201
    assert created.json()["persisted"] is False

    sid = created.json()["session_id"]
    clicked = client.post(f"/sessions/{sid}/click")
    assert clicked.status_code == 200
    assert clicked.json()["persisted"] is False
    assert clicked.json()["state"]["points"] == 1

    for _ in range(11):
        clicked = client.post(f"/sessions/{sid}/click")
        assert clicked.json()["persisted"] is False
    assert clicked.json()["state"]["points"] == 12

    bought = client.post(f"/sessions/{sid}/buy/autoPurr").json()
    assert bought["outcome"]["kind"] == "purchased"
    assert bought["state"]["points"] == 2
    assert bought["state"]["producer_owned"]["autoPurr"] == 1

    fetched = client.get(f"/sessions/{sid}")
    assert fetched.status_code == 200
    assert fetched.json()["persisted"] is False
    assert fetched.json()["state"] == bought["state"]


def test_tick_with_clock_moved_backwards(client, clock) -> None:
    sid = _new_session(client)
    for _ in range(10):
        client.post(f"/sessions/{sid}/click")
    bought = client.post(f"/sessions/{sid}/buy/autoPurr").json()
    last_update = bought["state"]["last_update"]

    clock.advance(-5_000)
    ticked = client.post(f"/sessions/{sid}/tick").json()
    assert ticked["outcome"]["gain"] == 0
    assert ticked["state"]["points"] == 0
    assert ticked["state"]["last_update"] == last_update

    # Accrual resumes from the last accepted timestamp.
    clock.advance(15_000)
    ticked = client.post(f"/sessions/{sid}/tick").json()
    assert ticked["outcome"]["gain"] == pytest.approx(1.0)
    assert ticked["state"]["last_update"] == clock.now


def test_ui_recovers_from_a_vanished_session(client_and_redis) -> None:
    client, r = client_and_redis
    sid = _new_session(client)
    r.flushall()

    # What the browser sees: the command 404s, then it opens a fresh session.
    assert client.post(f"/sessions/{sid}/tick").status_code == 404
    replacement = _new_session(client)
    assert client.post(f"/sessions/{replacement}/click").status_code == 200

    page = client.get("/ui/index.html")
    assert page.status_code == 200
    script = page.text
    command_body = script[script.index("async function command(") :]
    assert "catch (e)" in command_body.split("function connectUpdates")[0]
    assert "recoverSession()" in command_body.split("function connectUpdates")[0]
