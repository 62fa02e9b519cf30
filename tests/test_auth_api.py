"""API tests for sign-up, sign-in and the dashboard auth guard."""

USER = {"name": "Bob", "email": "bob@example.com", "password": "hunter2"}


def _signin(client):
    return client.post("/api/auth/signin", json={"email": USER["email"], "password": USER["password"]})


class TestSignup:

    def test_signup(self, auth_client):
        response = auth_client.post("/api/auth/signup", json=USER)
        assert response.status_code == 201
        body = response.json()
        assert body["email"] == USER["email"]
        assert "password" not in body

    def test_duplicate_email(self, auth_client):
        auth_client.post("/api/auth/signup", json=USER)
        assert auth_client.post("/api/auth/signup", json=USER).status_code == 409

    def test_missing_fields(self, auth_client):
        assert auth_client.post("/api/auth/signup", json={"email": USER["email"]}).status_code == 422


class TestSignin:

    def test_sets_cookies(self, auth_client):
        auth_client.post("/api/auth/signup", json=USER)
        response = _signin(auth_client)
        assert response.status_code == 200
        assert response.cookies.get("auth_token")
        assert response.cookies.get("auth_name") == "Bob"

    def test_wrong_password(self, auth_client):
        auth_client.post("/api/auth/signup", json=USER)
        response = auth_client.post("/api/auth/signin", json={"email": USER["email"], "password": "nope"})
        assert response.status_code == 401

    def test_unknown_email(self, auth_client):
        response = auth_client.post("/api/auth/signin", json={"email": "eve@example.com", "password": "x"})
        assert response.status_code == 401

    def test_me(self, auth_client):
        auth_client.post("/api/auth/signup", json=USER)
        _signin(auth_client)
        me = auth_client.get("/api/me").json()
        assert me["name"] == "Bob"
        assert "password" not in me


class TestGuard:

    def test_mutations_need_signin(self, auth_client, products):
        response = auth_client.put(f"/api/products/{products['Desk']}", json={"stock": 1})
        assert response.status_code == 401
        assert auth_client.get("/api/stats").status_code == 401

    def test_reads_are_open(self, auth_client, products):
        assert auth_client.get("/api/products").status_code == 200

    def test_signed_in_can_mutate(self, auth_client, products):
        auth_client.post("/api/auth/signup", json=USER)
        _signin(auth_client)
        response = auth_client.put(f"/api/products/{products['Desk']}", json={"stock": 1})
        assert response.status_code == 200

    def test_signout(self, auth_client, products):
        auth_client.post("/api/auth/signup", json=USER)
        _signin(auth_client)
        auth_client.delete("/api/auth/signin")
        assert auth_client.get("/api/me").status_code == 401

    def test_me_without_cookie(self, auth_client):
        assert auth_client.get("/api/me").status_code == 401
