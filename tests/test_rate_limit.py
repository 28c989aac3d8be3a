"""Fixed-window rate limiting."""

import asyncio
import inspect

import pytest
from limits import RateLimitItemPerHour
from limits.aio.storage import Storage as AsyncStorage
from limits.aio.strategies import FixedWindowRateLimiter as AsyncFixedWindowRateLimiter

from rate_limit import (
    AUTH_POLICY, BID_POLICY, DEFAULT_POLICIES, GLOBAL_POLICY, JOB_POST_POLICY,
    RateLimiter, RateLimitPolicy, async_storage_uri,
)
from tests.helpers import JOB_BODY, auth_header, register


@pytest.mark.unit
class TestPolicyMatching:

    @pytest.mark.parametrize("path,expected", [
        ("/api/auth/login", {"global", "auth"}),
        ("/api/auth/register", {"global", "auth"}),
        ("/api/auth/me", {"global"}),
        ("/api/jobs/create", {"global", "job-post"}),
        ("/api/jobs", {"global"}),
        ("/api/jobs/12", {"global"}),
        ("/api/bids", {"global", "bid"}),
        ("/api/bids/12/accept", {"global", "bid"}),
        ("/api/bids/my-bids", {"global", "bid"}),
        ("/api/bidsx", {"global"}),
        ("/", {"global"}),
    ])
    def test_paths(self, path, expected):
        assert {p.name for p in DEFAULT_POLICIES if p.matches(path)} == expected

    def test_configured_limits(self):
        assert (GLOBAL_POLICY.limit.amount, GLOBAL_POLICY.limit.get_expiry()) == (100, 15 * 60)
        assert (AUTH_POLICY.limit.amount, AUTH_POLICY.limit.get_expiry()) == (10, 3600)
        assert (JOB_POST_POLICY.limit.amount, JOB_POST_POLICY.limit.get_expiry()) == (20, 3600)
        assert (BID_POLICY.limit.amount, BID_POLICY.limit.get_expiry()) == (30, 3600)


@pytest.mark.unit
class TestRateLimiter:
    # check() is a coroutine; each test drives one event loop with asyncio.run

    def test_counters_are_per_client(self):
        policy = RateLimitPolicy(name="tiny", limit=RateLimitItemPerHour(2), message="slow down")
        limiter = RateLimiter("async+memory://", policies=[policy])

        async def scenario():
            first = await limiter.check("/x", "1.1.1.1")
            second = await limiter.check("/x", "1.1.1.1")
            refused = await limiter.check("/x", "1.1.1.1")
            other = await limiter.check("/x", "2.2.2.2")
            return first, second, refused, other

        first, second, refused, other = asyncio.run(scenario())
        assert first.allowed and second.allowed
        assert not refused.allowed
        assert refused.policy is policy
        assert refused.remaining == 0
        assert other.allowed

    def test_first_refusal_wins(self):
        strict = RateLimitPolicy(name="strict", limit=RateLimitItemPerHour(1), message="strict")
        loose = RateLimitPolicy(name="loose", limit=RateLimitItemPerHour(5), message="loose", paths=("/a",))
        limiter = RateLimiter("async+memory://", policies=[strict, loose])

        async def scenario():
            return [await limiter.check("/a", "ip") for _ in range(2)]

        allowed, refused = asyncio.run(scenario())
        assert allowed.allowed
        assert not refused.allowed
        assert refused.policy is strict

    def test_remaining_counts_down(self):
        policy = RateLimitPolicy(name="p", limit=RateLimitItemPerHour(3), message="m")
        limiter = RateLimiter("async+memory://", policies=[policy])

        async def scenario():
            return [(await limiter.check("/", "ip")).remaining for _ in range(3)]

        assert asyncio.run(scenario()) == [2, 1, 0]

    def test_reset_clears_counters(self):
        policy = RateLimitPolicy(name="p", limit=RateLimitItemPerHour(1), message="m")
        limiter = RateLimiter("async+memory://", policies=[policy])

        async def scenario():
            await limiter.check("/", "ip")
            await limiter.reset()
            return await limiter.check("/", "ip")

        assert asyncio.run(scenario()).allowed


@pytest.mark.unit
class TestAsyncStorage:
    """The middleware awaits the limiter, so counters must live in limits.aio storage."""

    def test_check_and_reset_are_coroutines(self):
        assert inspect.iscoroutinefunction(RateLimiter.check)
        assert inspect.iscoroutinefunction(RateLimiter.reset)

    @pytest.mark.parametrize("uri,expected", [
        ("memory://", "async+memory://"),
        ("redis://cache:6379/0", "async+redis://cache:6379/0"),
        ("async+memory://", "async+memory://"),
        ("async+redis://cache:6379", "async+redis://cache:6379"),
    ])
    def test_storage_uri_is_made_async(self, uri, expected):
        assert async_storage_uri(uri) == expected

    def test_plain_memory_uri_gets_async_storage(self):
        limiter = RateLimiter("memory://")
        assert isinstance(limiter.storage, AsyncStorage)
        assert isinstance(limiter.strategy, AsyncFixedWindowRateLimiter)


@pytest.mark.unit
class TestRateLimitMiddleware:

    def test_eleventh_login_in_an_hour_is_refused(self, client):
        body = {"email": "nobody@example.com", "password": "x"}
        for _ in range(10):
            assert client.post("/api/auth/login", json=body).status_code == 401

        resp = client.post("/api/auth/login", json=body)
        assert resp.status_code == 429
        assert resp.json() == {
            "status": 429,
            "message": "Too many authentication attempts, please try again later.",
        }
        assert int(resp.headers["Retry-After"]) > 0

    def test_auth_limit_does_not_affect_other_routes(self, client):
        body = {"email": "nobody@example.com", "password": "x"}
        for _ in range(11):
            client.post("/api/auth/login", json=body)
        assert client.get("/api/jobs").status_code == 200

    def test_standard_headers_only(self, client):
        resp = client.get("/api/jobs")
        assert resp.headers["RateLimit-Limit"] == "100"
        assert resp.headers["RateLimit-Remaining"] == "99"
        assert 0 < int(resp.headers["RateLimit-Reset"]) <= 15 * 60
        assert not any(h.lower().startswith("x-ratelimit") for h in resp.headers)

    def test_headers_describe_most_specific_policy(self, client):
        resp = client.get("/api/bids/1")
        assert resp.headers["RateLimit-Limit"] == "30"
        assert resp.headers["RateLimit-Remaining"] == "29"

    def test_global_limit(self, client):
        for _ in range(100):
            assert client.get("/").status_code == 200
        resp = client.get("/api/jobs")
        assert resp.status_code == 429
        assert resp.json()["message"] == "Too many requests, please try again later."

    def test_job_post_limit(self, client, store):
        employer = register(client, "Erin", "employer")
        for i in range(20):
            resp = client.post("/api/jobs/create", json={**JOB_BODY, "title": f"Job {i}"},
                               headers=auth_header(employer["token"]))
            assert resp.status_code == 201

        resp = client.post("/api/jobs/create", json=JOB_BODY, headers=auth_header(employer["token"]))
        assert resp.status_code == 429
        assert resp.json()["message"] == "Too many job posting attempts, please try again later."
        assert len(store.jobs) == 20

    def test_bid_limit_covers_reads_too(self, client):
        for _ in range(30):
            client.get("/api/bids/1")
        resp = client.get("/api/bids/my-bids")
        assert resp.status_code == 429
        assert resp.json()["message"] == "Too many bidding attempts, please try again later."
