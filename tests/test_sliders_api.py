from bson import ObjectId

from conftest import auth_headers


def _slider(title, order=0, active=True):
    return {
        "title": title,
        "description": f"{title} banner",
        "image": f"https://cdn.store.com/{title.lower()}.jpg",
        "button_text": "Shop now",
        "button_link": "/products",
        "order": order,
        "active": active,
    }


def test_create_and_list(client, admin):
    for title, order, active in (("Summer", 2, True), ("Winter", 1, True), ("Draft", 0, False)):
        response = client.post("/api/sliders", json=_slider(title, order, active), headers=auth_headers(admin))
        assert response.status_code == 201

    everything = client.get("/api/sliders").json()
    active = client.get("/api/sliders/active").json()

    assert [s["title"] for s in everything] == ["Draft", "Winter", "Summer"]
    assert [s["title"] for s in active] == ["Winter", "Summer"]


def test_create_requires_admin(client, buyer):
    response = client.post("/api/sliders", json=_slider("Summer"), headers=auth_headers(buyer))
    assert response.status_code == 403


def test_update_and_reorder(client, admin):
    slider_id = client.post("/api/sliders", json=_slider("Summer"), headers=auth_headers(admin)).json()["id"]

    updated = client.put(f"/api/sliders/{slider_id}", json={"active": False}, headers=auth_headers(admin))
    reordered = client.patch(f"/api/sliders/{slider_id}/order", json={"order": 7}, headers=auth_headers(admin))

    assert updated.json()["active"] is False
    assert updated.json()["title"] == "Summer"
    assert reordered.json()["order"] == 7


def test_missing_slider(client, admin):
    headers = auth_headers(admin)
    assert client.put(f"/api/sliders/{ObjectId()}", json={"title": "x"}, headers=headers).status_code == 404
    assert client.delete(f"/api/sliders/{ObjectId()}", headers=headers).status_code == 404


def test_delete(client, admin):
    slider_id = client.post("/api/sliders", json=_slider("Summer"), headers=auth_headers(admin)).json()["id"]

    assert client.delete(f"/api/sliders/{slider_id}", headers=auth_headers(admin)).status_code == 200
    assert client.get("/api/sliders").json() == []
