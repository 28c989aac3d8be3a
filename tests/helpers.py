"""Request helpers shared by the API tests."""


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register(client, name: str, role: str, email: str | None = None, password: str = "secret123") -> dict:
    email = email or f"{name.lower()}@example.com"
    resp = client.post("/api/auth/register", json={"name": name, "email": email, "password": password, "role": role})
    assert resp.status_code == 201, resp.text
    return resp.json()


def login(client, email: str, password: str = "secret123") -> str:
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


JOB_BODY = {
    "title": "API Dev",
    "description": "Build a REST API",
    "budget": 500,
    "duration": 10,
    "skillsRequired": ["Go"],
}

BID_BODY = {"bidAmount": 450, "timeline": 8, "message": "ready"}


def post_job(client, token: str, **overrides) -> dict:
    resp = client.post("/api/jobs/create", json={**JOB_BODY, **overrides}, headers=auth_header(token))
    assert resp.status_code == 201, resp.text
    return resp.json()


def post_bid(client, token: str, job_id: int, **overrides) -> dict:
    resp = client.post(f"/api/bids/{job_id}", json={**BID_BODY, **overrides}, headers=auth_header(token))
    assert resp.status_code == 201, resp.text
    return resp.json()


