from datetime import date


def _create_payload(invoice_number="2026-001", **overrides):
    payload = {
        "invoice_number": invoice_number,
        "invoice_date": "2026-09-30",
        "due_date": "2026-10-30",
        "items": [
            {"description": "Design", "quantity": 1.5, "rate_cents": 6667, "amount_cents": 10001},
            {"description": "Site visit", "quantity": 1, "rate_cents": 2500, "amount_cents": 2500},
        ],
    }
    payload.update(overrides)
    return payload


def test_unbilled_groups_endpoint(client, auth_headers, project_factory, time_entry_factory):
    project = project_factory(name="Villa Noord", client_name="Acme BV", default_rate_cents=6667)
    entry = time_entry_factory(project_id=project.id, minutes=90)
    time_entry_factory(
        project_id=project.id,
        minutes=60,
        invoiced_at=date(2026, 9, 30),
        invoice_number="2026-000",
    )
    time_entry_factory(project_id=None, minutes=30, occurred_on=date(2026, 8, 1))

    r = client.get("/invoices/unbilled", headers=auth_headers)
    assert r.status_code == 200, r.text
    groups = r.json()

    assert [g["project_name"] for g in groups] == ["Villa Noord", "Unknown"]
    villa, unknown = groups
    assert villa["client_name"] == "Acme BV"
    assert villa["total_hours"] == 1.5
    assert villa["total_amount_cents"] == 10001
    assert [e["id"] for e in villa["entries"]] == [entry.id]
    assert villa["entries"][0]["rate_cents"] == 6667
    assert villa["entries"][0]["amount_cents"] == 10001
    assert unknown["project_id"] is None
    assert unknown["total_amount_cents"] == 0

    filtered = client.get(f"/invoices/unbilled?project_id={project.id}", headers=auth_headers)
    assert [g["project_id"] for g in filtered.json()] == [project.id]


def test_invoice_full_lifecycle(client, auth_headers, project_factory, time_entry_factory):
    project = project_factory()
    e1 = time_entry_factory(project_id=project.id, minutes=90)
    e2 = time_entry_factory(project_id=project.id, minutes=30)

    create = client.post(
        "/invoices",
        json=_create_payload(project_id=project.id, vat_percent=21, time_entry_ids=[e1.id, e2.id]),
        headers=auth_headers,
    )
    assert create.status_code == 200, create.text
    created = create.json()
    invoice_id = created["id"]
    assert created["amount_cents"] == 12501
    assert created["status"] == "draft"
    assert created["vat_percent"] == 21.0
    assert created["project"] == {"name": "Villa Noord", "client_name": "Acme BV"}
    assert [i["position"] for i in created["items"]] == [0, 1]
    assert created["warnings"] == []
    assert created["unmarked_time_entry_ids"] == []

    unbilled = client.get("/invoices/unbilled", headers=auth_headers)
    assert unbilled.json() == []

    got = client.get(f"/invoices/{invoice_id}", headers=auth_headers)
    assert got.status_code == 200
    assert got.json()["invoice_number"] == "2026-001"

    put = client.put(
        f"/invoices/{invoice_id}",
        json={"due_date": "2026-11-15", "notes": "Thanks"},
        headers=auth_headers,
    )
    assert put.status_code == 200, put.text
    assert put.json()["due_date"] == "2026-11-15"
    assert put.json()["notes"] == "Thanks"

    sent = client.post(f"/invoices/{invoice_id}/send", headers=auth_headers)
    assert sent.status_code == 200
    assert sent.json()["status"] == "sent"

    listing = client.get("/invoices?status=sent", headers=auth_headers)
    assert [row["id"] for row in listing.json()] == [invoice_id]

    credit = client.post(f"/invoices/{invoice_id}/credit", headers=auth_headers)
    assert credit.status_code == 200, credit.text
    credit_body = credit.json()
    assert credit_body["invoice_number"] == "CN-2026-001"
    assert credit_body["amount_cents"] == -12501
    assert credit_body["status"] == "draft"
    assert [i["quantity"] for i in credit_body["items"]] == [-1.5, -1.0]

    deleted = client.delete(f"/invoices/{invoice_id}", headers=auth_headers)
    assert deleted.status_code == 200, deleted.text
    assert deleted.json() == {"success": True, "invoice_id": invoice_id, "released_time_entries": 2}

    assert client.get(f"/invoices/{invoice_id}", headers=auth_headers).status_code == 404
    unbilled = client.get("/invoices/unbilled", headers=auth_headers).json()
    assert sorted(e["id"] for g in unbilled for e in g["entries"]) == sorted([e1.id, e2.id])


def test_create_reports_entries_billed_elsewhere(client, auth_headers, time_entry_factory):
    entry = time_entry_factory()

    first = client.post("/invoices", json=_create_payload("2026-001", time_entry_ids=[entry.id]), headers=auth_headers)
    second = client.post("/invoices", json=_create_payload("2026-002", time_entry_ids=[entry.id]), headers=auth_headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["unmarked_time_entry_ids"] == [entry.id]
    assert second.json()["warnings"]


def test_create_with_empty_items_has_zero_amount(client, auth_headers):
    r = client.post("/invoices", json=_create_payload(items=[]), headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["amount_cents"] == 0
    assert r.json()["items"] == []


def test_create_validation_errors(client, auth_headers):
    blank = client.post("/invoices", json=_create_payload(invoice_number="   "), headers=auth_headers)
    assert blank.status_code == 400

    missing = client.post("/invoices", json={"invoice_date": "2026-09-30"}, headers=auth_headers)
    assert missing.status_code == 422

    unknown_field = client.post("/invoices", json=_create_payload(total_cents=5), headers=auth_headers)
    assert unknown_field.status_code == 422

    bad_status = client.post("/invoices", json=_create_payload(status="archived"), headers=auth_headers)
    assert bad_status.status_code == 422

    assert client.get("/invoices", headers=auth_headers).json() == []


def test_duplicate_invoice_number_is_store_error(client, auth_headers):
    assert client.post("/invoices", json=_create_payload(), headers=auth_headers).status_code == 200

    r = client.post("/invoices", json=_create_payload(), headers=auth_headers)

    assert r.status_code == 500
    assert "invoice_number" in r.json()["error"]


def test_update_cannot_change_invoice_number(client, auth_headers):
    invoice_id = client.post("/invoices", json=_create_payload(), headers=auth_headers).json()["id"]

    r = client.put(f"/invoices/{invoice_id}", json={"invoice_number": "X"}, headers=auth_headers)

    assert r.status_code == 422


def test_update_rejects_null_status(client, auth_headers):
    invoice_id = client.post("/invoices", json=_create_payload(), headers=auth_headers).json()["id"]

    r = client.put(f"/invoices/{invoice_id}", json={"status": None}, headers=auth_headers)

    assert r.status_code == 400


def test_missing_invoice_returns_404(client, auth_headers):
    assert client.get("/invoices/9999", headers=auth_headers).status_code == 404
    assert client.put("/invoices/9999", json={"notes": "x"}, headers=auth_headers).status_code == 404
    assert client.delete("/invoices/9999", headers=auth_headers).status_code == 404
    assert client.post("/invoices/9999/send", headers=auth_headers).status_code == 404
    assert client.post("/invoices/9999/credit", headers=auth_headers).status_code == 404
    assert client.get("/invoices/9999/document", headers=auth_headers).status_code == 404


def test_overdue_endpoint(client, auth_headers):
    late = client.post(
        "/invoices",
        json=_create_payload("2026-001", status="sent", due_date="2020-01-31"),
        headers=auth_headers,
    ).json()
    client.post("/invoices", json=_create_payload("2026-002", status="draft", due_date="2020-01-31"), headers=auth_headers)
    client.post("/invoices", json=_create_payload("2026-003", status="sent", due_date="2999-01-31"), headers=auth_headers)

    r = client.get("/invoices/overdue", headers=auth_headers)

    assert r.status_code == 200
    assert [row["id"] for row in r.json()] == [late["id"]]


def test_invoice_document_renders_html(client, auth_headers, project_factory):
    project = project_factory(name="Villa Noord", client_name="Acme BV")
    invoice_id = client.post(
        "/invoices",
        json=_create_payload(project_id=project.id, vat_percent=21),
        headers=auth_headers,
    ).json()["id"]

    r = client.get(f"/invoices/{invoice_id}/document", headers=auth_headers)

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    body = r.text
    assert "Invoice 2026-001" in body
    assert "Acme BV" in body
    assert "Site visit" in body
    assert "125.01" in body
    # 12501 * 21% = 2625.21
    assert "26.25" in body
    assert "151.26" in body


def test_credit_note_document_title(client, auth_headers):
    invoice_id = client.post("/invoices", json=_create_payload(), headers=auth_headers).json()["id"]
    credit_id = client.post(f"/invoices/{invoice_id}/credit", headers=auth_headers).json()["id"]

    r = client.get(f"/invoices/{credit_id}/document", headers=auth_headers)

    assert r.status_code == 200
    assert "Credit note CN-2026-001" in r.text
    assert "-125.01" in r.text


def test_create_rejects_quantity_beyond_two_decimals(client, auth_headers):
    r = client.post(
        "/invoices",
        json=_create_payload(items=[{"description": "x", "quantity": 1.333, "rate_cents": 6000, "amount_cents": 7998}]),
        headers=auth_headers,
    )

    assert r.status_code == 422
    assert client.get("/invoices", headers=auth_headers).json() == []


def test_vat_percent_is_bounded(client, auth_headers):
    too_high = client.post("/invoices", json=_create_payload(vat_percent=1000), headers=auth_headers)
    assert too_high.status_code == 422

    negative = client.post("/invoices", json=_create_payload(vat_percent=-1), headers=auth_headers)
    assert negative.status_code == 422

    invoice_id = client.post("/invoices", json=_create_payload(vat_percent=21), headers=auth_headers).json()["id"]
    bad_update = client.put(f"/invoices/{invoice_id}", json={"vat_percent": 100.5}, headers=auth_headers)
    assert bad_update.status_code == 422

    cleared = client.put(f"/invoices/{invoice_id}", json={"vat_percent": None}, headers=auth_headers)
    assert cleared.status_code == 200
    assert cleared.json()["vat_percent"] is None
