def test_root(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json() == {"status": "Hourbook running"}


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "version": "1.0.0"}
