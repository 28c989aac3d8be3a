# routes/auth.py
import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import APIRouter, Depends, Request, HTTPException, status
from passlib.context import CryptContext

from config import Settings
from db import get_store
from models import (
    Role, AuthenticatedUser, EmployerUser, FreelancerUser,
    RegisterRequest, LoginRequest, serialize_user,
)
from store import JobBoardStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# --- 1. 密碼與 Token 工具 ---
# 密碼只存 bcrypt 雜湊；Token 是 HS256 簽章的 JWT，內容只有使用者 id 與到期時間

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_token(user_id: int) -> str:
    """產生登入用的 JWT，JWT_EXPIRES_DAYS 天後失效。"""
    payload = {
        "id": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(days=Settings.JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, Settings.JWT_SECRET, algorithm=Settings.JWT_ALGORITHM)


def decode_token(token: str) -> int:
    """驗證 Token 並取出使用者 id；簽章錯誤、過期或格式不對都會丟出 jwt.PyJWTError。"""
    payload = jwt.decode(token, Settings.JWT_SECRET, algorithms=[Settings.JWT_ALGORITHM])
    user_id = payload.get("id")
    if not isinstance(user_id, int):
        raise jwt.InvalidTokenError("token has no user id")
    return user_id


# --- 2. 核心依賴項：取得目前登入的使用者 ---

def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    request: Request,
    store: JobBoardStore = Depends(get_store),
) -> AuthenticatedUser:
    """
    驗證 `Authorization: Bearer <token>` 標頭，並從資料庫載入使用者。

    用途：
    1. 每個請求各自驗證，伺服器不保存任何 Session。
    2. 沒帶標頭 -> 401 "Not authorized, no token"
    3. Token 驗證失敗 (簽章錯誤、過期) -> 401 "Not authorized, token failed"
    4. Token 裡的使用者已經不存在 -> 401 "Not authorized, user not found"
    """
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized, no token")

    try:
        user_id = decode_token(token)
    except jwt.PyJWTError as e:
        logger.info("Rejected bearer token: %s", e)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized, token failed")

    row = await store.get_user_by_id(user_id)
    if not row:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized, user not found")

    return AuthenticatedUser(**serialize_user(row))


# --- 3. 角色檢查 ---
# 兩者都依賴 get_current_user，所以沒登入的請求會先得到 401，不會走到角色判斷

async def require_employer(user: AuthenticatedUser = Depends(get_current_user)) -> EmployerUser:
    if user.role is not Role.EMPLOYER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized, employer only")
    return EmployerUser(**user.model_dump())


async def require_freelancer(user: AuthenticatedUser = Depends(get_current_user)) -> FreelancerUser:
    if user.role is not Role.FREELANCER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized, freelancer only")
    return FreelancerUser(**user.model_dump())


# --- 4. 註冊與登入 ---

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, store: JobBoardStore = Depends(get_store)):
    # Email 一律轉成小寫再存，登入時不分大小寫
    email = body.email.lower()
    row = await store.create_user(body.name, email, hash_password(body.password), body.role.value)
    if not row:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")

    logger.info("Registered %s user %s", row["role"], row["id"])
    return serialize_user(row, token=create_token(row["id"]))


@router.post("/login")
async def login(body: LoginRequest, store: JobBoardStore = Depends(get_store)):
    row = await store.get_user_by_email(body.email.lower())

    # 帳號不存在與密碼錯誤回傳同樣的訊息，避免被用來猜測哪些 Email 已註冊
    if not row or not verify_password(body.password, row["hashed_password"]):
        logger.info("Failed login for %s", body.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    return serialize_user(row, token=create_token(row["id"]))


@router.get("/me")
async def get_me(user: AuthenticatedUser = Depends(get_current_user)):
    return user.model_dump(mode="json")
