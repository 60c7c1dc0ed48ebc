from datetime import date


def test_time_entry_create_and_unbilled_by_default(client, auth_headers, project_factory):
    project = project_factory()

    r = client.post(
        "/time_entries",
        headers=auth_headers,
        json={"project_id": project.id, "occurred_on": "2026-09-14", "minutes": 45, "phase_code": "design"},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["minutes"] == 45
    assert body["invoiced_at"] is None
    assert body["invoice_number"] is None
    assert isinstance(body["id"], str) and body["id"]


def test_time_entry_for_missing_project_404(client, auth_headers):
    r = client.post(
        "/time_entries",
        headers=auth_headers,
        json={"project_id": 99999, "occurred_on": "2026-09-14", "minutes": 45},
    )
    assert r.status_code == 404


def test_time_entry_rejects_billing_fields(client, auth_headers):
    r = client.post(
        "/time_entries",
        headers=auth_headers,
        json={"occurred_on": "2026-09-14", "minutes": 45, "invoice_number": "2026-001"},
    )
    assert r.status_code == 422


def test_time_entries_list_filters(client, auth_headers, project_factory, time_entry_factory):
    p1 = project_factory(name="One")
    p2 = project_factory(name="Two")
    billed = time_entry_factory(
        project_id=p1.id,
        occurred_on=date(2026, 9, 10),
        invoiced_at=date(2026, 9, 30),
        invoice_number="2026-001",
    )
    open_p1 = time_entry_factory(project_id=p1.id, occurred_on=date(2026, 9, 12))
    open_p2 = time_entry_factory(project_id=p2.id, occurred_on=date(2026, 8, 20))

    def ids(query=""):
        r = client.get(f"/time_entries{query}", headers=auth_headers)
        assert r.status_code == 200, r.text
        return [row["id"] for row in r.json()]

    assert ids() == [open_p1.id, billed.id, open_p2.id]
    assert ids("?billed=true") == [billed.id]
    assert ids("?billed=false") == [open_p1.id, open_p2.id]
    assert ids(f"?project_id={p1.id}") == [open_p1.id, billed.id]
    assert ids("?occurred_from=2026-09-01&occurred_to=2026-09-11") == [billed.id]
    assert ids("?limit=1&offset=1") == [billed.id]
