"""
Shared fixtures.

The API runs against InMemoryStore, a dict-backed stand-in for
JobBoardStore injected through FastAPI's dependency_overrides, so the
suite needs no PostgreSQL server. The app is built with
manage_database=False, so the lifespan skips schema creation and the pool.
TestClient runs as a context manager: every request shares one event loop,
which the async rate-limit storage relies on.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-key-long-enough-for-hs256-signing")
os.environ.setdefault("DATABASE_URL", "postgresql://localhost/jobboard_test")

import itertools
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from passlib.context import CryptContext

import routes.auth
from db import get_store
from main import create_app
from rate_limit import RateLimiter
from tests.helpers import register


def _now():
    return datetime.now(timezone.utc)


class InMemoryStore:
    """Same methods and row shapes as store.JobBoardStore."""

    def __init__(self):
        self.users: dict[int, dict] = {}
        self.jobs: dict[int, dict] = {}
        self.bids: dict[int, dict] = {}
        self._ids = itertools.count(1)

    # --- users ---

    @staticmethod
    def _public_user(user: dict) -> dict:
        return {k: v for k, v in user.items() if k != "hashed_password"}

    async def create_user(self, name, email, hashed_password, role):
        if any(u["email"] == email for u in self.users.values()):
            return None
        now = _now()
        user = {
            "id": next(self._ids), "name": name, "email": email, "role": role,
            "hashed_password": hashed_password, "created_at": now, "updated_at": now,
        }
        self.users[user["id"]] = user
        return self._public_user(user)

    async def get_user_by_email(self, email):
        for user in self.users.values():
            if user["email"] == email:
                return dict(user)
        return None

    async def get_user_by_id(self, user_id):
        user = self.users.get(user_id)
        return self._public_user(user) if user else None

    # --- jobs ---

    def _job_row(self, job: dict) -> dict:
        poster = self.users[job["posted_by"]]
        return {**job, "poster_name": poster["name"], "poster_email": poster["email"]}

    async def create_job(self, posted_by, title, description, budget, duration, skills_required):
        now = _now()
        job = {
            "id": next(self._ids), "title": title, "description": description,
            "budget": budget, "duration": duration, "skills_required": list(skills_required),
            "posted_by": posted_by, "created_at": now, "updated_at": now,
        }
        self.jobs[job["id"]] = job
        return dict(job)

    async def list_jobs(self, skills=None):
        jobs = sorted(self.jobs.values(), key=lambda j: j["id"])
        if skills:
            jobs = [j for j in jobs if set(j["skills_required"]) & set(skills)]
        return [self._job_row(j) for j in jobs]

    async def get_job(self, job_id):
        job = self.jobs.get(job_id)
        return self._job_row(job) if job else None

    async def list_jobs_by_poster(self, user_id):
        return [self._job_row(j) for j in sorted(self.jobs.values(), key=lambda j: j["id"]) if j["posted_by"] == user_id]

    # --- bids ---

    def _bid_row(self, bid: dict) -> dict:
        freelancer = self.users[bid["freelancer_id"]]
        job = self.jobs[bid["job_id"]]
        return {
            **bid,
            "freelancer_name": freelancer["name"], "freelancer_email": freelancer["email"],
            "job_title": job["title"], "job_posted_by": job["posted_by"],
            "job_budget": job["budget"], "job_duration": job["duration"],
            "job_skills_required": list(job["skills_required"]),
        }

    async def create_bid(self, job_id, freelancer_id, bid_amount, timeline, message):
        if any(b["job_id"] == job_id and b["freelancer_id"] == freelancer_id for b in self.bids.values()):
            return None
        now = _now()
        bid = {
            "id": next(self._ids), "job_id": job_id, "freelancer_id": freelancer_id,
            "bid_amount": bid_amount, "timeline": timeline, "message": message,
            "status": "Pending", "created_at": now, "updated_at": now,
        }
        self.bids[bid["id"]] = bid
        return self._bid_row(bid)

    async def get_bid(self, bid_id):
        bid = self.bids.get(bid_id)
        return self._bid_row(bid) if bid else None

    async def list_bids_for_job(self, job_id):
        return [self._bid_row(b) for b in sorted(self.bids.values(), key=lambda b: b["id"]) if b["job_id"] == job_id]

    async def list_bids_by_freelancer(self, freelancer_id):
        mine = [b for b in self.bids.values() if b["freelancer_id"] == freelancer_id]
        mine.sort(key=lambda b: (b["created_at"], b["id"]), reverse=True)
        return [self._bid_row(b) for b in mine]

    async def accept_bid(self, bid_id):
        target = self.bids[bid_id]
        now = _now()
        for bid in self.bids.values():
            if bid["job_id"] == target["job_id"]:
                bid["status"] = "Accepted" if bid["id"] == bid_id else "Rejected"
                bid["updated_at"] = now
        return self._bid_row(target)

    async def reject_bid(self, bid_id):
        bid = self.bids[bid_id]
        bid["status"] = "Rejected"
        bid["updated_at"] = _now()
        return self._bid_row(bid)


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    # Minimum bcrypt cost keeps the suite quick
    monkeypatch.setattr(routes.auth, "pwd_context", CryptContext(schemes=["bcrypt"], bcrypt__rounds=4))


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def limiter():
    return RateLimiter("async+memory://")


@pytest.fixture
def app(store, limiter):
    app = create_app(limiter=limiter, manage_database=False)
    app.dependency_overrides[get_store] = lambda: store
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def employer(client):
    return register(client, "Erin", "employer")


@pytest.fixture
def freelancer(client):
    return register(client, "Finn", "freelancer")
