from conftest import JSON, PASSWORD, count_tokens, login, signup


def bearer(token):
    return {"Authorization": f"Bearer {token}", **JSON}


# ----- signup -----


def test_signup_returns_user_tokens_and_cookies(client, store):
    resp = signup(client)

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Signup successful"
    assert body["user"]["email"] == "jane@contractor.com"
    assert body["user"]["contractorId"] == "CTR-1"
    assert set(body["tokens"]) == {"accessToken", "refreshToken", "expiresIn"}
    assert "accessToken" in resp.cookies
    assert "refreshToken" in resp.cookies
    assert count_tokens(store) == 1


def test_signup_without_contractor_id_is_400(client):
    resp = signup(client, contractor_id="   ")

    assert resp.status_code == 400
    assert resp.json() == {"error": "Contractor ID is required"}


def test_signup_with_invalid_email_is_400(client):
    resp = signup(client, email="not-an-email")

    assert resp.status_code == 400


def test_signup_duplicate_email_is_400(client):
    signup(client)

    resp = signup(client, email="JANE@contractor.com")

    assert resp.status_code == 400
    assert resp.json() == {"error": "Email already exists"}


def test_signup_from_form_redirects_to_dashboard(client):
    resp = client.post(
        "/auth/signup",
        data={
            "email": "jane@contractor.com",
            "password": PASSWORD,
            "name": "Jane Doe",
            "contractorId": "CTR-1",
        },
        follow_redirects=False,
    )

    assert resp.status_code == 303
    assert resp.headers["location"] == "/dashboard"


# ----- login -----


def test_login_page_is_html(client):
    resp = client.get("/auth/login")

    assert resp.status_code == 200
    assert "<form" in resp.text


def test_login_page_redirects_with_live_session(client, make_user):
    make_user()
    login(client)

    resp = client.get("/auth/login", follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == "/dashboard"


def test_login_success(client, make_user, store):
    make_user()

    resp = login(client, email="  JANE@contractor.com")

    assert resp.status_code == 200
    assert resp.json()["message"] == "Login successful"
    assert resp.json()["user"]["lastLogin"] is not None
    assert count_tokens(store) == 1


def test_wrong_password_and_unknown_email_look_the_same(client, make_user):
    make_user()

    wrong_password = login(client, password="wrong-password")
    unknown_email = login(client, email="nobody@contractor.com")

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {"error": "Invalid email or password"}


def test_failed_browser_login_rerenders_the_form(client, make_user):
    make_user()

    resp = client.post(
        "/auth/login",
        data={"email": "jane@contractor.com", "password": "wrong-password"},
    )

    assert resp.status_code == 401
    assert "Invalid email or password" in resp.text
    assert 'value="jane@contractor.com"' in resp.text


def test_login_with_empty_body_is_401(client):
    resp = client.post("/auth/login", headers=JSON)

    assert resp.status_code == 401


def test_suspended_account_cannot_log_in(client, make_user, store):
    make_user(email="admin@portal.com", role="admin")
    user = make_user()
    admin_tokens = login(client, email="admin@portal.com").json()["tokens"]

    resp = client.patch(
        f"/admin/users/{user.id}/status",
        json={"status": "suspended"},
        headers=bearer(admin_tokens["accessToken"]),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "suspended"

    resp = login(client)
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid email or password"}


def test_suspending_an_account_revokes_its_refresh_tokens(client, make_user, store):
    make_user(email="admin@portal.com", role="admin")
    user = make_user()
    user_tokens = login(client).json()["tokens"]
    admin_tokens = login(client, email="admin@portal.com").json()["tokens"]

    client.patch(
        f"/admin/users/{user.id}/status",
        json={"status": "inactive"},
        headers=bearer(admin_tokens["accessToken"]),
    )

    assert count_tokens(store) == 0
    resp = client.post(
        "/auth/refresh-token", json={"refreshToken": user_tokens["refreshToken"]}, headers=JSON
    )
    assert resp.status_code == 401


# ----- refresh -----


def test_refresh_rotates_the_token(client, make_user, store):
    make_user()
    old = login(client).json()["tokens"]["refreshToken"]

    first = client.post("/auth/refresh-token", json={"refreshToken": old}, headers=JSON)
    second = client.post("/auth/refresh-token", json={"refreshToken": old}, headers=JSON)

    assert first.status_code == 200
    assert first.json()["message"] == "Tokens refreshed successfully"
    assert first.json()["tokens"]["refreshToken"] != old
    assert second.status_code == 401
    assert second.json() == {"error": "Invalid or expired refresh token"}
    assert count_tokens(store) == 1


def test_refresh_reads_the_cookie(client, make_user):
    make_user()
    login(client)

    resp = client.post("/auth/refresh-token", headers=JSON)

    assert resp.status_code == 200
    new_access = resp.json()["tokens"]["accessToken"]
    client.cookies.clear()
    assert client.get("/users/me", headers=bearer(new_access)).status_code == 200


def test_refresh_without_token_is_401(client):
    resp = client.post("/auth/refresh-token", headers=JSON)

    assert resp.status_code == 401
    assert resp.json() == {"error": "Refresh token required"}


def test_access_token_cannot_be_used_to_refresh(client, make_user):
    make_user()
    access = login(client).json()["tokens"]["accessToken"]

    resp = client.post("/auth/refresh-token", json={"refreshToken": access}, headers=JSON)

    assert resp.status_code == 401


# ----- logout -----


def test_logout_revokes_the_refresh_cookie(client, make_user, store):
    make_user()
    token = login(client).json()["tokens"]["refreshToken"]

    resp = client.get("/auth/logout", follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == "/"
    assert count_tokens(store) == 0
    resp = client.post("/auth/refresh-token", json={"refreshToken": token}, headers=JSON)
    assert resp.status_code == 401


def test_logout_without_cookies_still_redirects(client):
    resp = client.get("/auth/logout", follow_redirects=False)

    assert resp.status_code == 303


def test_logout_all_revokes_every_device(client, make_user, store):
    make_user()
    tokens = [login(client).json()["tokens"]["refreshToken"] for _ in range(3)]
    assert count_tokens(store) == 3

    resp = client.post("/auth/logout-all", headers=JSON)

    assert resp.status_code == 200
    assert resp.json() == {"message": "Logged out from all devices"}
    assert count_tokens(store) == 0
    for token in tokens:
        resp = client.post("/auth/refresh-token", json={"refreshToken": token}, headers=JSON)
        assert resp.status_code == 401


def test_sixth_login_evicts_the_oldest_device(client, make_user, store):
    make_user()
    tokens = [login(client).json()["tokens"]["refreshToken"] for _ in range(6)]

    assert count_tokens(store) == 5
    oldest = client.post("/auth/refresh-token", json={"refreshToken": tokens[0]}, headers=JSON)
    newest = client.post("/auth/refresh-token", json={"refreshToken": tokens[-1]}, headers=JSON)
    assert oldest.status_code == 401
    assert newest.status_code == 200


# ----- account -----


def test_change_password(client, make_user, store):
    make_user()
    login(client)

    resp = client.post(
        "/auth/change-password",
        json={"currentPassword": PASSWORD, "newPassword": "another-secret"},
        headers=JSON,
    )

    assert resp.status_code == 200
    assert count_tokens(store) == 0
    assert login(client, password=PASSWORD).status_code == 401
    assert login(client, password="another-secret").status_code == 200


def test_change_password_with_wrong_current_password(client, make_user):
    make_user()
    login(client)

    resp = client.post(
        "/auth/change-password",
        json={"currentPassword": "nope", "newPassword": "another-secret"},
        headers=JSON,
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "Current password is incorrect"}


def test_change_password_requires_auth(client):
    resp = client.post(
        "/auth/change-password",
        json={"currentPassword": PASSWORD, "newPassword": "another-secret"},
        headers=JSON,
    )

    assert resp.status_code == 401


def test_delete_account(client, make_user, store):
    make_user()
    access = login(client).json()["tokens"]["accessToken"]

    resp = client.post("/auth/delete-account", headers=bearer(access))

    assert resp.status_code == 200
    assert resp.json() == {"message": "Account deleted"}
    assert count_tokens(store) == 0
    assert login(client).status_code == 401
    assert client.get("/users/me", headers=bearer(access)).status_code == 404


def test_delete_account_requires_auth(client):
    resp = client.post("/auth/delete-account", headers=JSON)

    assert resp.status_code == 401


def test_health_check(client):
    assert client.get("/").json() == {"status": "ok", "service": "claims-portal"}
