# rate_limit.py
"""
依來源 IP 的請求頻率限制 (Rate Limiting)。

整個 API 由四條「固定時間窗」(fixed window) 規則保護：
- global   : 所有路徑，15 分鐘 100 次
- auth     : 註冊 / 登入，1 小時 10 次
- job-post : 發布工作，1 小時 20 次
- bid      : 所有 /api/bids 路徑，1 小時 30 次

每個請求會依照上面的順序，被「所有路徑相符的規則」各計一次，
只要有一條規則超過上限，就直接回傳 429，後面的規則不再計算。

計數器存放在 `limits` 的非同步儲存體 (async storage)，由 URI 決定：
- async+memory:// 只存在這個程序裡 (單機部署)
- async+redis://host:6379 讓多台機器共用同一組計數器
全部呼叫都是 await，就算 redis 變慢也不會卡住整個 event loop。
"""

import logging
import math
import time
from dataclasses import dataclass

from fastapi import Request
from fastapi.responses import JSONResponse
from limits import RateLimitItem, RateLimitItemPerHour, RateLimitItemPerMinute
from limits.aio.strategies import FixedWindowRateLimiter
from limits.storage import storage_from_string
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    limit: RateLimitItem
    message: str
    # None 代表套用到所有路徑
    paths: tuple[str, ...] | None = None

    def matches(self, path: str) -> bool:
        if self.paths is None:
            return True
        # 以「完整路徑段」比對前綴：/api/bids 包含 /api/bids/7，但不包含 /api/bidsx
        return any(path == p or path.startswith(p + "/") for p in self.paths)


GLOBAL_POLICY = RateLimitPolicy(
    name="global",
    limit=RateLimitItemPerMinute(100, 15),
    message="Too many requests, please try again later.",
)
AUTH_POLICY = RateLimitPolicy(
    name="auth",
    limit=RateLimitItemPerHour(10),
    message="Too many authentication attempts, please try again later.",
    paths=("/api/auth/register", "/api/auth/login"),
)
JOB_POST_POLICY = RateLimitPolicy(
    name="job-post",
    limit=RateLimitItemPerHour(20),
    message="Too many job posting attempts, please try again later.",
    paths=("/api/jobs/create",),
)
BID_POLICY = RateLimitPolicy(
    name="bid",
    limit=RateLimitItemPerHour(30),
    message="Too many bidding attempts, please try again later.",
    paths=("/api/bids",),
)

DEFAULT_POLICIES = (GLOBAL_POLICY, AUTH_POLICY, JOB_POST_POLICY, BID_POLICY)


@dataclass
class RateLimitResult:
    allowed: bool
    policy: RateLimitPolicy | None = None
    remaining: int = 0
    reset_at: float = 0.0


def async_storage_uri(uri: str) -> str:
    """
    把儲存體 URI 轉成非同步版本。

    設定檔寫 memory:// 或 redis://... 都可以，這裡統一補上 "async+" 前綴，
    確保拿到的是 limits.aio 的儲存體，而不是會阻塞的同步版本。
    """
    return uri if uri.startswith("async+") else f"async+{uri}"


class RateLimiter:
    """以 (規則名稱, 來源 IP) 為 key 的固定時間窗計數器。"""

    def __init__(self, storage_uri: str = "async+memory://", policies=DEFAULT_POLICIES):
        uri = async_storage_uri(storage_uri)
        self.storage = storage_from_string(uri)
        self.strategy = FixedWindowRateLimiter(self.storage)
        self.policies = tuple(policies)
        logger.info(
            "Rate limiting: %s (storage %s)",
            ", ".join(f"{p.name}={p.limit}" for p in self.policies),
            uri.split("://", 1)[0],
        )

    async def check(self, path: str, client_key: str) -> RateLimitResult:
        """
        把這次請求計入每一條相符的規則，遇到第一條拒絕的規則就停下來。

        回傳值描述「最後一條被計算的規則」，也就是最具體的那一條，
        中介層會用它來產生 RateLimit-* 標頭。
        """
        result = RateLimitResult(allowed=True)
        for policy in self.policies:
            if not policy.matches(path):
                continue

            allowed = await self.strategy.hit(policy.limit, policy.name, client_key)
            stats = await self.strategy.get_window_stats(policy.limit, policy.name, client_key)
            result = RateLimitResult(
                allowed=allowed,
                policy=policy,
                remaining=max(stats.remaining, 0),
                reset_at=stats.reset_time,
            )
            if not allowed:
                break
        return result

    async def reset(self):
        """清空所有計數器 (管理或測試用)。"""
        await self.storage.reset()


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    if result.policy is None:
        return {}
    reset_in = max(math.ceil(result.reset_at - time.time()), 0)
    return {
        "RateLimit-Limit": str(result.policy.limit.amount),
        "RateLimit-Remaining": str(result.remaining),
        "RateLimit-Reset": str(reset_in),
    }


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next):
        ip = client_ip(request)
        result = await self.limiter.check(request.url.path, ip)
        headers = rate_limit_headers(result)

        if not result.allowed:
            # 超過上限：不進入路由，直接回 429
            logger.warning("Rate limit '%s' exceeded by %s on %s", result.policy.name, ip, request.url.path)
            headers["Retry-After"] = headers["RateLimit-Reset"]
            return JSONResponse(
                status_code=429,
                content={"status": 429, "message": result.policy.message},
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
