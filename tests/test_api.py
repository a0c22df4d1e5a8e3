def headers(actor, forwarded_for=None):
    values = {"X-Actor-Id": actor.user_id}
    if forwarded_for:
        values["X-Forwarded-For"] = forwarded_for
    return values


def _create_mission(api_client, brand, **fields):
    payload = {
        "title": "Campagne hiver",
        "product_name": "Crème Edelweiss",
        "format": "9_16",
        "script_type": "tutorial",
        "rights_usage": "paid_3m",
        "budget": 600,
    }
    payload.update(fields)
    response = api_client.post("/missions", json=payload, headers=headers(brand))
    assert response.status_code == 201
    return response.json()["mission"]["id"]


def test_health(api_client):
    assert api_client.get("/health").json() == {"ok": True}
    assert api_client.get("/health/db").json() == {"db": "ok"}


def test_requests_require_known_actor(api_client):
    assert api_client.get("/missions").status_code == 401
    unknown = api_client.get("/missions", headers={"X-Actor-Id": "00000000-0000-0000-0000-000000000000"})
    assert unknown.status_code == 401


def test_mission_workflow_over_http(api_client, cast):
    mission_id = _create_mission(api_client, cast.brand)

    step = api_client.post(
        f"/missions/{mission_id}/steps", json={"step": "brief_received"}, headers=headers(cast.operator)
    )
    assert step.status_code == 200
    assert step.json()["success"] is True
    assert step.json()["current_step_index"] == 0

    proposed = api_client.post(
        f"/missions/{mission_id}/creators",
        json={"creator_ids": [cast.creator.user_id]},
        headers=headers(cast.operator),
    )
    assert proposed.json()["step"]["implied"] == ["brand_reviewing_profiles"]

    assigned = api_client.post(
        f"/missions/{mission_id}/creators/assign",
        json={"creator_id": cast.creator.user_id},
        headers=headers(cast.brand),
    )
    assert assigned.json()["mission"]["selected_creator_id"] == cast.creator.user_id

    saved = api_client.put(
        f"/missions/{mission_id}/script",
        json={"content": "Ouverture, démonstration, conclusion.", "status": "validated"},
        headers=headers(cast.operator),
    )
    assert saved.json()["mission"]["script_status"] == "validated"
    api_client.post(f"/missions/{mission_id}/script/send-to-brand", headers=headers(cast.operator))
    approved = api_client.post(f"/missions/{mission_id}/script/approve", headers=headers(cast.brand))
    assert approved.json()["mission"]["script_status"] == "brand_approved"

    sent = api_client.post(
        f"/missions/{mission_id}/mandate-contract", json={"amount": 300}, headers=headers(cast.operator)
    )
    assert sent.status_code == 201
    assert sent.json()["contract"]["state"] == "pending_counterparty_signature"

    signed = api_client.post(
        f"/missions/{mission_id}/mandate-contract/sign",
        headers=headers(cast.creator, forwarded_for="192.0.2.44, 10.0.0.1"),
    )
    assert signed.status_code == 200
    assert signed.json()["contract"]["state"] == "active"
    assert signed.json()["contract"]["counterparty"]["network_address"] == "192.0.2.44"

    text = api_client.get(f"/missions/{mission_id}/mandate-contract/text", headers=headers(cast.creator))
    assert "192.0.2.44" in text.json()["text"]

    timeline = api_client.get(f"/missions/{mission_id}/steps", headers=headers(cast.brand)).json()
    assert timeline["current_step_index"] == 7
    assert timeline["next_step"]["id"] == "creator_accepted"


def test_errors_are_mapped_to_status_codes(api_client, cast):
    mission_id = _create_mission(api_client, cast.brand)

    forbidden = api_client.post(
        f"/missions/{mission_id}/steps", json={"step": "brief_received"}, headers=headers(cast.brand)
    )
    assert forbidden.status_code == 403
    assert forbidden.json()["success"] is False
    assert forbidden.json()["kind"] == "Unauthorized"

    missing = api_client.get("/missions/00000000-0000-0000-0000-000000000000", headers=headers(cast.operator))
    assert missing.status_code == 404
    assert missing.json()["kind"] == "NotFound"

    invalid = api_client.post(
        f"/missions/{mission_id}/steps", json={"step": "teleported"}, headers=headers(cast.operator)
    )
    assert invalid.status_code == 422

    conflict = api_client.post(f"/missions/{mission_id}/script/approve", headers=headers(cast.brand))
    assert conflict.status_code == 409
    assert conflict.json()["kind"] == "InvalidTransition"

    not_eligible = api_client.post(f"/missions/{mission_id}/invoice", headers=headers(cast.operator))
    assert not_eligible.status_code == 409
    assert not_eligible.json()["kind"] == "NotEligible"


def test_other_brands_missions_are_hidden(api_client, cast):
    mission_id = _create_mission(api_client, cast.brand)
    response = api_client.get(f"/missions/{mission_id}", headers=headers(cast.other_brand))
    assert response.status_code == 404
    listed = api_client.get("/missions", headers=headers(cast.other_brand)).json()
    assert listed["missions"] == []


def test_contract_preview(api_client, cast):
    mission_id = _create_mission(api_client, cast.brand)
    api_client.post(f"/missions/{mission_id}/steps", json={"step": "brief_received"}, headers=headers(cast.operator))
    proposed = api_client.post(
        f"/missions/{mission_id}/creators",
        json={"creator_ids": [cast.creator.user_id]},
        headers=headers(cast.operator),
    ).json()
    application_id = proposed["applications"][0]["id"]

    preview = api_client.post(
        "/contracts/preview",
        json={"kind": "direct", "key": application_id, "amount": 350},
        headers=headers(cast.brand),
    )
    assert preview.status_code == 200
    assert "En attente de signature" in preview.json()["text"]
    assert "350.00" in preview.json()["text"]

    denied = api_client.post(
        "/contracts/preview",
        json={"kind": "mandate", "key": mission_id, "amount": 350},
        headers=headers(cast.brand),
    )
    assert denied.status_code == 403

    contract = api_client.get(f"/applications/{application_id}/contract", headers=headers(cast.creator))
    assert contract.json()["contract"]["state"] == "none"
    hidden = api_client.get(f"/applications/{application_id}/contract", headers=headers(cast.other_creator))
    assert hidden.status_code == 404


def test_invoice_endpoints_are_operator_only(api_client, cast):
    mission_id = _create_mission(api_client, cast.brand)
    response = api_client.post(f"/missions/{mission_id}/invoice", headers=headers(cast.brand))
    assert response.status_code == 403
    assert api_client.get(f"/missions/{mission_id}/invoice", headers=headers(cast.brand)).json() == {"invoice": None}


def test_mission_stats(api_client, cast):
    _create_mission(api_client, cast.brand)
    stats = api_client.get("/missions/stats", headers=headers(cast.operator))
    assert stats.json()["stats"]["total"] == 1
    assert api_client.get("/missions/stats", headers=headers(cast.creator)).status_code == 403


def test_application_endpoints(api_client, cast):
    mission_id = _create_mission(api_client, cast.brand)
    applied = api_client.post(
        f"/missions/{mission_id}/applications",
        json={"pitch_message": "Je tourne en extérieur.", "proposed_rate": 220},
        headers=headers(cast.creator),
    )
    assert applied.status_code == 201
    application = applied.json()["application"]
    assert application["proposed_rate"] == 220.0

    duplicate = api_client.post(f"/missions/{mission_id}/applications", json={}, headers=headers(cast.creator))
    assert duplicate.status_code == 409

    other = api_client.post(f"/missions/{mission_id}/applications", json={}, headers=headers(cast.other_creator))
    rejected = api_client.post(
        f"/applications/{other.json()['application']['id']}/status",
        json={"status": "rejected"},
        headers=headers(cast.brand),
    )
    assert rejected.json()["application"]["status"] == "rejected"

    withdrawn = api_client.post(f"/applications/{application['id']}/withdraw", headers=headers(cast.creator))
    assert withdrawn.json()["application"]["status"] == "withdrawn"
    denied = api_client.post(f"/applications/{application['id']}/withdraw", headers=headers(cast.brand))
    assert denied.status_code == 403

    deliverables = api_client.get(f"/missions/{mission_id}/deliverables", headers=headers(cast.brand))
    assert deliverables.json() == {"deliverables": []}
    missing = api_client.post(
        "/deliverables/00000000-0000-0000-0000-000000000000/review",
        json={"status": "approved"},
        headers=headers(cast.brand),
    )
    assert missing.status_code == 404
