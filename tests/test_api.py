from ledger_helpers import ADMIN, ALICE, BOB, DAY, START, headers

GRANT_PAYLOAD = {
    "holder": ALICE,
    "total_options": 10_000,
    "strike_price": 250,
    "vesting_start": START,
    "cliff_duration": 365 * DAY,
    "vesting_duration": 1460 * DAY,
    "post_termination_window": 90 * DAY,
}


def _issue(client, **overrides) -> int:
    response = client.post("/api/grants", json={**GRANT_PAYLOAD, **overrides}, headers=headers(ADMIN))
    assert response.status_code == 201
    return response.json()["id"]


def _fund(client, address: str, amount: int = 10**12) -> None:
    credit = client.post("/api/payment/credit", json={"address": address, "amount": amount}, headers=headers(ADMIN))
    assert credit.status_code == 200
    allowance = client.put("/api/payment/allowance", json={"amount": amount}, headers=headers(address))
    assert allowance.status_code == 200


def test_grant_exercise_and_burn_flow(client, clock) -> None:
    grant_id = _issue(client)
    _fund(client, ALICE)

    clock.set(START + 730 * DAY)
    summary = client.get(f"/api/grants/{grant_id}/summary", headers=headers(ALICE))
    assert summary.status_code == 200
    summary_json = summary.json()
    assert summary_json["vested_options"] == 5000
    assert summary_json["exercisable_options"] == 5000
    assert summary_json["exercisable_cost"] == 5000 * 250
    assert summary_json["state"] == "vesting"

    cost = client.get(f"/api/grants/{grant_id}/exercise-cost", params={"amount": 300}, headers=headers(ALICE))
    assert cost.json()["cost"] == 75_000

    exercised = client.post(f"/api/grants/{grant_id}/exercise", json={"amount": 300}, headers=headers(ALICE))
    assert exercised.status_code == 200
    assert exercised.json()["minted_units"] == 300 * 10**18
    assert exercised.json()["exercised_options"] == 300

    balance = client.get(f"/api/equity/balances/{ALICE}", headers=headers(ALICE))
    assert balance.json()["balance"] == 300 * 10**18
    supply = client.get("/api/equity/supply", headers=headers(ALICE))
    assert supply.json()["total_supply"] == 300 * 10**18

    not_yet = client.post(f"/api/grants/{grant_id}/burn", headers=headers(ALICE))
    assert not_yet.status_code == 409
    assert not_yet.json()["code"] == "grant_not_burnable"

    clock.set(START + 1460 * DAY)
    rest = client.post(f"/api/grants/{grant_id}/exercise", json={"amount": 9700}, headers=headers(ALICE))
    assert rest.status_code == 200

    burned = client.post(f"/api/grants/{grant_id}/burn", headers=headers(ALICE))
    assert burned.status_code == 204
    assert client.get(f"/api/grants/{grant_id}", headers=headers(ALICE)).status_code == 404

    history = client.get(f"/api/grants/{grant_id}/events", headers=headers(ADMIN))
    assert history.status_code == 200
    assert history.json()[-1]["kind"] == "grant_burned"
    assert client.get(f"/api/grants/{grant_id}/events", headers=headers(ALICE)).status_code == 404


def test_exercise_errors_carry_structured_context(client, clock) -> None:
    grant_id = _issue(client)
    _fund(client, ALICE)
    clock.set(START + 365 * DAY)

    too_much = client.post(f"/api/grants/{grant_id}/exercise", json={"amount": 2600}, headers=headers(ALICE))
    assert too_much.status_code == 409
    body = too_much.json()
    assert body["code"] == "exceeds_exercisable"
    assert body["context"] == {"grant_id": grant_id, "requested": 2600, "available": 2500}

    stranger = client.post(f"/api/grants/{grant_id}/exercise", json={"amount": 1}, headers=headers(BOB))
    assert stranger.status_code == 404
    assert stranger.json()["code"] == "grant_not_found"

    zero = client.post(f"/api/grants/{grant_id}/exercise", json={"amount": 0}, headers=headers(ALICE))
    assert zero.status_code == 422


def test_termination_window_and_expiry(client, clock) -> None:
    grant_id = _issue(client)
    _fund(client, ALICE)

    clock.set(START + 730 * DAY)
    denied = client.post(f"/api/grants/{grant_id}/terminate", headers=headers(ALICE))
    assert denied.status_code == 403

    terminated = client.post(f"/api/grants/{grant_id}/terminate", headers=headers(ADMIN))
    assert terminated.status_code == 200
    assert terminated.json()["terminated"] is True
    assert terminated.json()["termination_timestamp"] == START + 730 * DAY

    again = client.post(f"/api/grants/{grant_id}/terminate", headers=headers(ADMIN))
    assert again.json()["code"] == "grant_already_terminated"

    clock.set(START + 730 * DAY + 90 * DAY + 1)
    expired = client.post(f"/api/grants/{grant_id}/exercise", json={"amount": 1}, headers=headers(ALICE))
    assert expired.status_code == 409
    assert expired.json()["code"] == "grant_expired"

    summary = client.get(f"/api/grants/{grant_id}/summary", headers=headers(ALICE)).json()
    assert summary["is_expired"] is True
    assert summary["is_burnable"] is True


def test_transfer_requires_admin_approval(client) -> None:
    grant_id = _issue(client)

    blocked = client.post(f"/api/grants/{grant_id}/transfer", json={"destination": BOB}, headers=headers(ALICE))
    assert blocked.status_code == 409
    assert blocked.json()["context"] == {"grant_id": grant_id, "custodian": ALICE, "destination": BOB}

    forbidden = client.put(
        f"/api/grants/{grant_id}/transfer-approval", json={"destination": BOB}, headers=headers(ALICE)
    )
    assert forbidden.status_code == 403

    approved = client.put(
        f"/api/grants/{grant_id}/transfer-approval", json={"destination": BOB}, headers=headers(ADMIN)
    )
    assert approved.status_code == 200
    assert approved.json()["destination"] == BOB

    pending = client.get(f"/api/grants/{grant_id}/transfer-approval", headers=headers(ALICE))
    assert pending.json()["destination"] == BOB

    executed = client.post(f"/api/grants/{grant_id}/transfer-approval/execute", headers=headers(ALICE))
    assert executed.status_code == 200
    assert executed.json()["custodian"] == BOB

    assert client.get(f"/api/grants/{grant_id}", headers=headers(ALICE)).status_code == 404
    assert client.get(f"/api/grants/{grant_id}/transfer-approval", headers=headers(BOB)).json() is None

    events = client.get(f"/api/grants/{grant_id}/events", headers=headers(BOB)).json()
    assert [event["kind"] for event in events] == ["grant_created", "transfer_approved", "transfer_executed"]


def test_revoked_approval_cannot_be_executed(client) -> None:
    grant_id = _issue(client)
    client.put(f"/api/grants/{grant_id}/transfer-approval", json={"destination": BOB}, headers=headers(ADMIN))

    revoked = client.delete(f"/api/grants/{grant_id}/transfer-approval", headers=headers(ADMIN))
    assert revoked.status_code == 204

    execute = client.post(f"/api/grants/{grant_id}/transfer-approval/execute", headers=headers(ALICE))
    assert execute.status_code == 409
    assert execute.json()["code"] == "no_pending_approval"


def test_grant_validation_and_issuer_role(client) -> None:
    bad_schedule = client.post(
        "/api/grants",
        json={**GRANT_PAYLOAD, "cliff_duration": 2000 * DAY},
        headers=headers(ADMIN),
    )
    assert bad_schedule.status_code == 422

    not_issuer = client.post("/api/grants", json=GRANT_PAYLOAD, headers=headers(BOB))
    assert not_issuer.status_code == 403
    assert not_issuer.json()["code"] == "missing_role"

    unauthenticated = client.post("/api/grants", json=GRANT_PAYLOAD)
    assert unauthenticated.status_code == 401


def test_holder_scoped_listing(client) -> None:
    first = _issue(client)
    second = _issue(client, total_options=500)
    _issue(client, holder=BOB)

    own = client.get("/api/grants", headers=headers(ALICE))
    assert [row["id"] for row in own.json()] == [first, second]

    snooping = client.get("/api/grants", params={"holder": BOB}, headers=headers(ALICE))
    assert snooping.json() == []

    as_admin = client.get("/api/grants", params={"holder": ALICE}, headers=headers(ADMIN))
    assert len(as_admin.json()) == 2


def test_admin_controls(client, clock) -> None:
    grant_id = _issue(client)
    _fund(client, ALICE)
    clock.set(START + 730 * DAY)

    status_before = client.get("/api/admin/status", headers=headers(ALICE)).json()
    assert status_before["exercise_paused"] is False

    assert client.post("/api/admin/pause", headers=headers(ALICE)).status_code == 403
    paused = client.post("/api/admin/pause", headers=headers(ADMIN))
    assert paused.json()["exercise_paused"] is True

    blocked = client.post(f"/api/grants/{grant_id}/exercise", json={"amount": 1}, headers=headers(ALICE))
    assert blocked.json()["code"] == "exercise_paused"

    client.post("/api/admin/unpause", headers=headers(ADMIN))
    new_treasury = "0x00000000000000000000000000000000000000cc"
    updated = client.put("/api/admin/treasury", json={"treasury_address": new_treasury}, headers=headers(ADMIN))
    assert updated.json()["treasury_address"] == new_treasury

    client.post(f"/api/grants/{grant_id}/exercise", json={"amount": 4}, headers=headers(ALICE))
    treasury = client.get(f"/api/payment/balances/{new_treasury}", headers=headers(ADMIN))
    assert treasury.json()["balance"] == 1000


def test_admin_manages_accounts_and_roles(client) -> None:
    created = client.post(
        "/api/accounts",
        json={"address": "0x00000000000000000000000000000000000000DD", "roles": ["issuer"]},
        headers=headers(ADMIN),
    )
    assert created.status_code == 201
    body = created.json()
    assert body["address"] == "0x00000000000000000000000000000000000000dd"
    assert body["roles"] == ["issuer"]

    new_key = {"X-API-Key": body["api_key"]}
    me = client.get("/api/accounts/me", headers=new_key)
    assert me.json()["roles"] == ["issuer"]

    issued = client.post("/api/grants", json=GRANT_PAYLOAD, headers=new_key)
    assert issued.status_code == 201

    revoked = client.delete(f"/api/accounts/{body['address']}/roles/issuer", headers=headers(ADMIN))
    assert revoked.json()["roles"] == []
    assert client.post("/api/grants", json=GRANT_PAYLOAD, headers=new_key).status_code == 403

    duplicate = client.post("/api/accounts", json={"address": body["address"]}, headers=headers(ADMIN))
    assert duplicate.status_code == 409

    not_admin = client.post("/api/accounts", json={"address": "0x00000000000000000000000000000000000000ee"}, headers=headers(ALICE))
    assert not_admin.status_code == 403
