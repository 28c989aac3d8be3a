# models/user.py
from enum import Enum
from typing import Annotated, Literal
from pydantic import BaseModel, StringConstraints

# 去掉前後空白後至少要有一個字；空字串視同「沒有填」
NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Role(str, Enum):
    """兩種帳號角色，註冊時決定，之後不能更改。"""
    EMPLOYER = "employer"
    FREELANCER = "freelancer"


class AuthenticatedUser(BaseModel):
    """已通過 Token 驗證的使用者 (絕對不包含密碼雜湊)。"""
    id: int
    name: str
    email: str
    role: Role


class EmployerUser(AuthenticatedUser):
    """經過 require_employer 檢查的使用者；型別本身就保證角色是雇主。"""
    role: Literal[Role.EMPLOYER] = Role.EMPLOYER


class FreelancerUser(AuthenticatedUser):
    role: Literal[Role.FREELANCER] = Role.FREELANCER


# 定義前端傳來的資料格式
class RegisterRequest(BaseModel):
    name: NonEmptyStr
    email: NonEmptyStr
    password: NonEmptyStr
    role: Role


class LoginRequest(BaseModel):
    email: NonEmptyStr
    password: NonEmptyStr


def serialize_user(row: dict, token: str | None = None) -> dict:
    # 註冊與登入時才會附上 token
    data = {
        "id": row["id"],
        "name": row["name"],
        "email": row["email"],
        "role": row["role"],
    }
    if token is not None:
        data["token"] = token
    return data
