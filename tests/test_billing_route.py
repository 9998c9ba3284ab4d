from conftest import TODAY, dec


def test_health(client):
  resp = client.get("/health")
  assert resp.status_code == 200
  assert resp.json() == {"ok": True}


def test_create_client_rejects_duplicate_id(client):
  resp = client.post("/api/clients", json={"id": "CLI-001", "name": "Again"})
  assert resp.status_code == 409
  resp = client.post("/api/clients", json={"id": "CLI-002", "name": "BlueSky Logistics"})
  assert resp.status_code == 200
  names = [c["name"] for c in client.get("/api/clients", params={"q": "blue"}).json()]
  assert names == ["BlueSky Logistics"]


def test_subscription_collection_flow(client):
  resp = client.post("/api/sales", json={
    "kind": "subscription", "client_ref": "CLI-001", "project_ref": "PRJ-001",
    "monthly_amount": "120.00", "billing_day_of_month": TODAY.day,
  })
  assert resp.status_code == 200
  sub = resp.json()["subscription"]
  assert sub["next_due_date"] == TODAY.isoformat()
  assert dec(sub["due_amount"]) == dec("120")

  resp = client.post("/api/payments", json={"type": "subscription", "reference_id": sub["id"], "amount": "60"})
  assert resp.status_code == 422
  assert "at least 120.00" in resp.json()["detail"]

  resp = client.post("/api/payments", json={"type": "subscription", "reference_id": sub["id"], "amount": "120"})
  assert resp.status_code == 200
  body = resp.json()
  assert body["ok"] is True
  assert body["receipt"]["next_due_date"] == "2026-04-15"
  assert body["receipt"]["title"] == "Subscription payment receipt"

  due = client.get(f"/api/subscriptions/{sub['id']}/due").json()
  assert dec(due["due_amount"]) == 0
  assert due["next_due_date"] == "2026-04-15"


def test_paused_subscription_is_refused(client, make_subscription):
  sub = make_subscription()
  assert client.post(f"/api/subscriptions/{sub.id}/pause").json()["is_active"] is False
  listed = client.get("/api/subscriptions", params={"active": "false"}).json()
  assert [s["id"] for s in listed] == [sub.id]
  resp = client.post("/api/payments", json={"type": "subscription", "reference_id": sub.id, "amount": "100"})
  assert resp.status_code == 422
  assert client.post(f"/api/subscriptions/{sub.id}/resume").json()["is_active"] is True


def test_contract_collection_until_paid_off(client):
  resp = client.post("/api/sales", json={
    "kind": "contract", "client_ref": "CLI-001", "project_ref": "PRJ-001",
    "total_amount": "1000", "initial_payment": "200", "installment_count": 4,
  })
  contract = resp.json()["contract"]
  assert dec(contract["remaining_balance"]) == dec("800")
  assert dec(contract["installment_amount"]) == dec("200")

  resp = client.post("/api/payments", json={"type": "contract", "reference_id": contract["id"], "amount": "1000"})
  assert resp.status_code == 422

  resp = client.post("/api/payments", json={
    "type": "contract", "reference_id": contract["id"], "amount": "790", "next_due_date": "2026-04-15",
  })
  assert resp.status_code == 200

  balance = client.get(f"/api/contracts/{contract['id']}/balance").json()
  assert dec(balance["paid_so_far"]) == dec("790")
  assert dec(balance["remaining_balance"]) == dec("10")
  assert balance["next_due_date"] == "2026-04-15"

  resp = client.post("/api/payments", json={"type": "contract", "reference_id": contract["id"], "amount": "10"})
  assert resp.json()["receipt"]["status"] == "cancelled"
  assert [c["status"] for c in client.get("/api/contracts").json()] == ["cancelled"]

  ledger = client.get("/api/payments", params={"type": "contract", "reference_id": contract["id"]}).json()
  assert sorted(dec(p["amount"]) for p in ledger) == [dec("10"), dec("790")]

  notes = [m["note"] for m in client.get("/api/statements", params={"client_ref": "CLI-001"}).json()]
  assert notes == ["CONTRACT ACQUIRED", "INITIAL PAYMENT", "PAYMENT", "PAYMENT"]


def test_unknown_contract_is_404(client):
  resp = client.post("/api/payments", json={"type": "contract", "reference_id": 99, "amount": "10"})
  assert resp.status_code == 404
  assert client.get("/api/contracts/99/balance").status_code == 404


def test_unknown_payment_type_is_rejected(client):
  resp = client.post("/api/payments", json={"type": "refund", "reference_id": 1, "amount": "10"})
  assert resp.status_code == 422


def test_void_contract(client, make_contract):
  contract = make_contract()
  resp = client.post(f"/api/contracts/{contract.id}/void", json={"key": "nope"})
  assert resp.status_code == 422
  resp = client.post(f"/api/contracts/{contract.id}/void", json={"key": "secret"})
  assert resp.json()["status"] == "voided"
  resp = client.post("/api/payments", json={"type": "contract", "reference_id": contract.id, "amount": "5"})
  assert resp.status_code == 422


def test_config_hides_void_key(client):
  resp = client.put("/api/config", json={"business_name": "Renamed", "void_key": "other"})
  assert resp.status_code == 200
  assert resp.json()["business_name"] == "Renamed"
  assert "void_key" not in client.get("/api/config").json()


def test_seed_only_when_empty(client):
  assert client.post("/api/seed").json() == {"ok": True, "seeded": False}
