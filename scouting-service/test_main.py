import pytest

from conftest import PASSWORD


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


# Auth
@pytest.mark.asyncio
async def test_register_sets_session_cookie_for_me(client):
    response = await client.post(
        "/api/auth/register", json={"email": "alice@example.com", "password": PASSWORD}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["user"]["email"] == "alice@example.com"

    set_cookie = response.headers["set-cookie"].lower()
    assert set_cookie.startswith("token=")
    assert "httponly" in set_cookie
    assert "samesite=lax" in set_cookie
    assert "max-age=604800" in set_cookie

    me = await client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json() == {"ok": True, "user": body["user"]}


@pytest.mark.asyncio
async def test_register_normalizes_email(client):
    response = await client.post(
        "/api/auth/register", json={"email": "  Bob@Example.COM ", "password": PASSWORD}
    )
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "bob@example.com"


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(client):
    first = await client.post(
        "/api/auth/register", json={"email": "dup@example.com", "password": PASSWORD}
    )
    assert first.status_code == 200

    second = await client.post(
        "/api/auth/register", json={"email": " DUP@example.com", "password": "another1"}
    )
    assert second.status_code == 409
    assert second.json() == {"error": "email already registered"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"password": PASSWORD},
        {"email": "x@example.com"},
        {"email": "   ", "password": PASSWORD},
        {"email": "x@example.com", "password": "12345"},
    ],
)
async def test_register_rejects_bad_input(client, payload):
    response = await client.post("/api/auth/register", json=payload)
    assert response.status_code == 400
    assert "error" in response.json()
    assert "set-cookie" not in response.headers


@pytest.mark.asyncio
async def test_login_wrong_password_and_unknown_email_look_the_same(client):
    await client.post("/api/auth/register", json={"email": "carol@example.com", "password": PASSWORD})
    await client.post("/api/auth/logout")

    wrong_password = await client.post(
        "/api/auth/login", json={"email": "carol@example.com", "password": "wrong-pass"}
    )
    unknown_email = await client.post(
        "/api/auth/login", json={"email": "nobody@example.com", "password": PASSWORD}
    )
    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {"error": "invalid credentials"}


@pytest.mark.asyncio
async def test_login_missing_fields(client):
    response = await client.post("/api/auth/login", json={"email": "carol@example.com"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_then_logout(client):
    registered = await client.post(
        "/api/auth/register", json={"email": "dave@example.com", "password": PASSWORD}
    )
    await client.post("/api/auth/logout")
    assert (await client.get("/api/auth/me")).status_code == 401

    login = await client.post(
        "/api/auth/login", json={"email": "DAVE@example.com", "password": PASSWORD}
    )
    assert login.status_code == 200
    assert login.json()["user"] == registered.json()["user"]
    assert (await client.get("/api/auth/me")).json()["user"]["id"] == registered.json()["user"]["id"]

    logout = await client.post("/api/auth/logout")
    assert logout.status_code == 200
    assert logout.json() == {"ok": True}
    assert (await client.get("/api/auth/me")).status_code == 401


@pytest.mark.asyncio
async def test_bearer_header_is_accepted(client):
    response = await client.post(
        "/api/auth/register", json={"email": "erin@example.com", "password": PASSWORD}
    )
    token = response.cookies["token"]
    client.cookies.clear()

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "erin@example.com"


@pytest.mark.asyncio
async def test_tampered_cookie_is_rejected(client):
    client.cookies.set("token", "not-a-real-token")
    response = await client.get("/api/players")
    assert response.status_code == 401
    assert response.json() == {"error": "invalid or expired token"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method, path",
    [
        ("GET", "/api/auth/me"),
        ("GET", "/api/players"),
        ("POST", "/api/players"),
        ("DELETE", "/api/players/1"),
        ("GET", "/api/players/1/evaluations"),
        ("POST", "/api/players/1/evaluations"),
        ("GET", "/api/dashboard"),
    ],
)
async def test_protected_routes_require_login(client, method, path):
    response = await client.request(method, path, json={})
    assert response.status_code == 401
    assert response.json() == {"error": "not logged in"}


# Players and evaluations
@pytest.mark.asyncio
async def test_create_and_list_players(auth_client):
    first = await auth_client.post("/api/players", json={"full_name": "  Jane Doe  ", "position": "GK"})
    assert first.status_code == 201
    jane = first.json()
    assert jane["full_name"] == "Jane Doe"
    assert jane["position"] == "GK"
    assert jane["birthdate"] is None
    assert isinstance(jane["id"], int)
    assert jane["created_at"]

    second = await auth_client.post("/api/players", json={"full_name": "John Roe", "birthdate": "2008-05-01"})
    assert second.status_code == 201

    players = (await auth_client.get("/api/players")).json()
    assert [p["full_name"] for p in players] == ["John Roe", "Jane Doe"]


@pytest.mark.asyncio
async def test_create_player_requires_name(auth_client):
    response = await auth_client.post("/api/players", json={"full_name": "  "})
    assert response.status_code == 400
    assert response.json() == {"error": "full_name is required"}

    response = await auth_client.post("/api/players", json={})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_non_numeric_id_is_rejected(auth_client):
    for method in ("DELETE", "GET"):
        path = "/api/players/abc" if method == "DELETE" else "/api/players/abc/evaluations"
        response = await auth_client.request(method, path)
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid id"}

    response = await auth_client.post("/api/players/abc/evaluations", json={"date": "2024-01-01"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid id"}


@pytest.mark.asyncio
async def test_delete_missing_player(auth_client):
    response = await auth_client.delete("/api/players/999")
    assert response.status_code == 404
    assert response.json() == {"error": "player not found"}


@pytest.mark.asyncio
async def test_evaluation_validation(auth_client):
    player = (await auth_client.post("/api/players", json={"full_name": "Jane Doe"})).json()
    path = f"/api/players/{player['id']}/evaluations"

    missing_date = await auth_client.post(path, json={"score": 5})
    assert missing_date.status_code == 400
    assert missing_date.json() == {"error": "date is required"}

    bad_score = await auth_client.post(path, json={"date": "2024-01-01", "score": "great"})
    assert bad_score.status_code == 400
    assert bad_score.json() == {"error": "score must be an integer"}

    blank_score = await auth_client.post(
        path, json={"date": "2024-01-01", "score": "", "evaluator_name": "", "notes": "quick feet"}
    )
    assert blank_score.status_code == 201
    evaluation = blank_score.json()
    assert evaluation["score"] is None
    assert evaluation["evaluator_name"] is None
    assert evaluation["notes"] == "quick feet"
    assert evaluation["player_id"] == player["id"]

    zero = await auth_client.post(path, json={"date": "2024-01-02", "score": 0})
    assert zero.json()["score"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("score", [10**20, -(10**20), 2**31, "99999999999"])
async def test_score_outside_integer_column_is_rejected(auth_client, score):
    player = (await auth_client.post("/api/players", json={"full_name": "Jane Doe"})).json()
    path = f"/api/players/{player['id']}/evaluations"

    response = await auth_client.post(path, json={"date": "2024-01-01", "score": score})
    assert response.status_code == 400
    assert response.json() == {"error": "score is out of range"}
    assert (await auth_client.get(path)).json() == []

    largest = await auth_client.post(path, json={"date": "2024-01-01", "score": 2**31 - 1})
    assert largest.status_code == 201


@pytest.mark.asyncio
@pytest.mark.parametrize("score", [True, False])
async def test_boolean_score_is_rejected(auth_client, score):
    player = (await auth_client.post("/api/players", json={"full_name": "Jane Doe"})).json()
    response = await auth_client.post(
        f"/api/players/{player['id']}/evaluations", json={"date": "2024-01-01", "score": score}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "score must be an integer"}


@pytest.mark.asyncio
async def test_created_at_is_returned_in_utc(auth_client):
    player = (await auth_client.post("/api/players", json={"full_name": "Jane Doe"})).json()
    assert player["created_at"].endswith(("+00:00", "Z"))

    evaluation = (
        await auth_client.post(f"/api/players/{player['id']}/evaluations", json={"date": "2024-01-01"})
    ).json()
    assert evaluation["created_at"].endswith(("+00:00", "Z"))

    listed = (await auth_client.get("/api/players")).json()
    assert listed[0]["created_at"] == player["created_at"]


@pytest.mark.asyncio
async def test_evaluation_for_missing_player(auth_client):
    response = await auth_client.post("/api/players/4242/evaluations", json={"date": "2024-01-01"})
    assert response.status_code == 404
    assert response.json() == {"error": "player not found"}


@pytest.mark.asyncio
async def test_evaluations_ordered_by_date_then_id(auth_client):
    player = (await auth_client.post("/api/players", json={"full_name": "Jane Doe"})).json()
    path = f"/api/players/{player['id']}/evaluations"
    older = (await auth_client.post(path, json={"date": "2024-01-01", "score": 5})).json()
    first_march = (await auth_client.post(path, json={"date": "2024-03-01", "score": 6})).json()
    second_march = (await auth_client.post(path, json={"date": "2024-03-01", "score": 7})).json()

    evaluations = (await auth_client.get(path)).json()
    assert [e["id"] for e in evaluations] == [second_march["id"], first_march["id"], older["id"]]


@pytest.mark.asyncio
async def test_dashboard_average_ignores_null_scores(auth_client):
    empty = (await auth_client.get("/api/dashboard")).json()
    assert empty == {"players_count": 0, "evals_count": 0, "avg_score": None}

    player = (await auth_client.post("/api/players", json={"full_name": "Jane Doe"})).json()
    path = f"/api/players/{player['id']}/evaluations"
    await auth_client.post(path, json={"date": "2024-01-01", "score": None})

    unscored = (await auth_client.get("/api/dashboard")).json()
    assert unscored == {"players_count": 1, "evals_count": 1, "avg_score": None}

    await auth_client.post(path, json={"date": "2024-01-02", "score": 7})
    await auth_client.post(path, json={"date": "2024-01-03", "score": 9})

    stats = (await auth_client.get("/api/dashboard")).json()
    assert stats == {"players_count": 1, "evals_count": 3, "avg_score": 8.0}


@pytest.mark.asyncio
async def test_unknown_route_returns_json_error(auth_client):
    response = await auth_client.get("/api/nope")
    assert response.status_code == 404
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_malformed_json_body(auth_client):
    response = await auth_client.post(
        "/api/players", content="{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "invalid JSON body"}


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/api/players", "/api/players/1/evaluations", "/api/players/abc/evaluations"])
async def test_anonymous_request_is_rejected_before_body_validation(client, path):
    response = await client.post(path, content="{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 401
    assert response.json() == {"error": "not logged in"}


@pytest.mark.asyncio
async def test_anonymous_rejection_keeps_cors_headers(client):
    response = await client.get("/api/players", headers={"Origin": "http://localhost:5173"})
    assert response.status_code == 401
    assert "access-control-allow-origin" in response.headers


@pytest.mark.asyncio
async def test_cors_preflight_is_not_gated(client):
    response = await client.options(
        "/api/players",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
    )
    assert response.status_code == 200
    assert "access-control-allow-origin" in response.headers


@pytest.mark.asyncio
async def test_end_to_end_scenario(client):
    register = await client.post(
        "/api/auth/register", json={"email": "alice@example.com", "password": "secret1"}
    )
    assert register.status_code == 200
    assert "token" in register.cookies

    created = await client.post("/api/players", json={"full_name": "Jane Doe"})
    assert created.status_code == 201
    player_id = created.json()["id"]

    evaluation = await client.post(
        f"/api/players/{player_id}/evaluations", json={"date": "2024-01-01", "score": 8}
    )
    assert evaluation.status_code == 201

    dashboard = await client.get("/api/dashboard")
    assert dashboard.json() == {"players_count": 1, "evals_count": 1, "avg_score": 8}

    deleted = await client.delete(f"/api/players/{player_id}")
    assert deleted.status_code == 200
    assert deleted.json() == {"ok": True}

    evaluations = await client.get(f"/api/players/{player_id}/evaluations")
    assert evaluations.status_code == 200
    assert evaluations.json() == []
    assert all(p["id"] != player_id for p in (await client.get("/api/players")).json())
    assert (await client.get("/api/dashboard")).json() == {
        "players_count": 0,
        "evals_count": 0,
        "avg_score": None,
    }
