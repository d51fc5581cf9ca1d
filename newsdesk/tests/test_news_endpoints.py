# newsdesk/tests/test_news_endpoints.py
from datetime import datetime, timedelta, timezone


def _mk_article(title, category="political", **extra):
    payload = {
        "title": title,
        "summary": "sum",
        "full_content": "body",
        "category": category,
        "author": "UnitTest",
        "publication_date": "2026-10-18",
        "image_url": None,
    }
    payload.update(extra)
    return payload


def test_add_and_get_news(client, as_admin):
    r = client.post("/news", json=_mk_article("Assembly session", id="a-1"), headers=as_admin)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["id"] == "a-1"
    created = datetime.fromisoformat(data["created_at"].replace("Z", "+00:00"))
    expires = datetime.fromisoformat(data["expires_at"].replace("Z", "+00:00"))
    assert expires - created == timedelta(days=7)

    r = client.get("/news/a-1")
    assert r.status_code == 200
    assert r.json()["data"]["title"] == "Assembly session"

    r = client.get("/news/missing")
    assert r.status_code == 404


def test_add_news_generates_id_and_rejects_duplicates(client, as_admin):
    r = client.post("/news", json=_mk_article("No id"), headers=as_admin)
    assert r.status_code == 200
    assert r.json()["data"]["id"].startswith("article-")

    client.post("/news", json=_mk_article("First", id="dup"), headers=as_admin)
    r = client.post("/news", json=_mk_article("Second", id="dup"), headers=as_admin)
    assert r.status_code == 409
    assert client.get("/news/dup").json()["data"]["title"] == "First"


def test_add_news_validation(client, as_admin):
    r = client.post("/news", json=_mk_article("   "), headers=as_admin)
    assert r.status_code == 422
    r = client.post("/news", json=_mk_article("Bad", category="sports"), headers=as_admin)
    assert r.status_code == 422


def test_admin_mutations_refused_for_non_admin(client, as_admin, as_user):
    from newsdesk.storage import repository as repo
    from newsdesk.storage.models import NewsIn

    client.post("/news", json=_mk_article("Keep me", id="keep"), headers=as_admin)
    old = datetime.now(timezone.utc) - timedelta(days=8)
    repo.add_news(NewsIn(**_mk_article("Old story", id="old")), now=old)

    for headers in ({}, as_user):
        r = client.post("/news", json=_mk_article("Intruder", id="x"), headers=headers)
        assert r.status_code == 403
        assert r.json()["error"].startswith("Unauthorized")
        assert client.delete("/news/keep", headers=headers).status_code == 403
        assert client.post("/news/purge-expired", headers=headers).status_code == 403
        assert client.post("/ingest/reload", headers=headers).status_code == 403
        assert client.post("/ingest/sakshi", headers=headers).status_code == 403

    ids = {n["id"] for n in client.get("/news").json()["data"]}
    assert ids == {"keep"}
    # o expirado continua no banco: o purge foi recusado
    assert repo.known_ids() == {"keep", "old"}


def test_guest_with_invalid_body_gets_403(client):
    r = client.post("/news", json={"title": "x"})
    assert r.status_code == 403
    assert r.json()["error"].startswith("Unauthorized")
    assert client.post("/news", headers={"X-Principal": "reader"}).status_code == 403
    assert client.get("/news").json()["data"] == []


def test_category_listing_is_subset_of_all(client, as_admin):
    client.post("/news", json=_mk_article("P1", id="p1"), headers=as_admin)
    client.post("/news", json=_mk_article("M1", category="movie", id="m1"), headers=as_admin)
    client.post("/news", json=_mk_article("M2", category="movie", id="m2"), headers=as_admin)

    all_items = client.get("/news").json()["data"]
    for category in ("political", "movie"):
        r = client.get(f"/news/category/{category}")
        assert r.status_code == 200
        got = [n["id"] for n in r.json()["data"]]
        expected = [n["id"] for n in all_items if n["category"] == category]
        assert got == expected

    assert client.get("/news/category/sports").status_code == 422


def test_listing_sorted_and_paginated(client):
    from newsdesk.storage import repository as repo
    from newsdesk.storage.models import NewsIn

    base = datetime.now(timezone.utc)
    for i in range(12):
        repo.add_news(
            NewsIn(**_mk_article(f"Movie {i}", category="movie", id=f"m{i}",
                                 publication_date=f"2026-10-{i + 1:02d}")),
            now=base - timedelta(minutes=i),
        )

    r = client.get("/news/category/movie", params={"page": 1})
    j = r.json()
    assert j["total"] == 12
    assert [n["id"] for n in j["data"]] == [f"m{i}" for i in range(10)]

    r = client.get("/news/category/movie", params={"page": 2})
    assert [n["id"] for n in r.json()["data"]] == ["m10", "m11"]

    r = client.get("/news", params={"sort": "publication_date", "page": 1, "page_size": 3})
    assert [n["id"] for n in r.json()["data"]] == ["m11", "m10", "m9"]

    assert client.get("/news", params={"page": 0}).status_code == 400


def test_delete_news(client, as_admin):
    client.post("/news", json=_mk_article("Gone", id="gone"), headers=as_admin)
    r = client.delete("/news/gone", headers=as_admin)
    assert r.status_code == 200
    assert client.get("/news/gone").status_code == 404

    # delete de novo -> 404
    r = client.delete("/news/gone", headers=as_admin)
    assert r.status_code == 404


def test_expired_hidden_then_purged(client, as_admin):
    from newsdesk.storage import repository as repo
    from newsdesk.storage.models import NewsIn

    old = datetime.now(timezone.utc) - timedelta(days=8)
    repo.add_news(NewsIn(**_mk_article("Old story", id="old")), now=old)
    client.post("/news", json=_mk_article("New story", id="new"), headers=as_admin)

    ids = {n["id"] for n in client.get("/news").json()["data"]}
    assert ids == {"new"}
    assert client.get("/news/old").status_code == 404
    # ainda presente fisicamente
    assert "old" in repo.known_ids()

    r = client.post("/news/purge-expired", headers=as_admin)
    assert r.status_code == 200
    assert r.json()["removed"] == 1
    assert repo.known_ids() == {"new"}
