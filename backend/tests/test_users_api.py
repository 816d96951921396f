def test_list_users_hides_password_hashes(client, auth_headers):
    response = client.get("/api/users", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == [{"id": 1, "name": "Stock Keeper", "email": "keeper@example.com"}]


def test_update_user(client, auth_headers):
    response = client.put("/api/users/1", json={"name": "Head Keeper"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["name"] == "Head Keeper"


def test_update_to_taken_email_is_conflict(client, auth_headers):
    client.post("/api/auth/register", json={"name": "Bo", "email": "bo@example.com", "password": "pw"})

    response = client.put("/api/users/1", json={"email": "bo@example.com"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "conflict"


def test_delete_user(client, auth_headers):
    assert client.delete("/api/users/1", headers=auth_headers).status_code == 200
    assert client.get("/api/users/1", headers=auth_headers).status_code == 404
    assert client.delete("/api/users/1", headers=auth_headers).status_code == 404


def test_users_require_auth(client):
    assert client.get("/api/users").status_code == 401
