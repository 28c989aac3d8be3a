# models/__init__.py
from .user import Role, AuthenticatedUser, EmployerUser, FreelancerUser, RegisterRequest, LoginRequest, serialize_user
from .job import JobCreate, normalize_skills, serialize_job
from .bid import BidStatus, BidCreate, serialize_bid

__all__ = [
    "Role", "AuthenticatedUser", "EmployerUser", "FreelancerUser",
    "RegisterRequest", "LoginRequest", "serialize_user",
    "JobCreate", "normalize_skills", "serialize_job",
    "BidStatus", "BidCreate", "serialize_bid",
]
