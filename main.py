# main.py
import logging
from contextlib import asynccontextmanager

import psycopg
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings
from db import open_pool, close_pool  # 匯入資料庫連線池的開啟 / 關閉
from init_db import init_database
from logger import setup_logging
from rate_limit import RateLimiter, RateLimitMiddleware

# --- 1. 日誌設定 ---
# 越早設定越好，之後各模組的 logging.getLogger(__name__) 都會套用同一個格式
setup_logging(Settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# --- 2. 匯入各個功能的路由 (Router) ---
# 我們把不同功能拆到不同檔案，避免 main.py 太長
from routes.auth import router as auth_router  # 註冊 / 登入 / 目前使用者
from routes.jobs import router as jobs_router  # 工作的發布與瀏覽
from routes.bids import router as bids_router  # 投標、接受與拒絕


# --- 3. 伺服器啟動與關閉 ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    每個程序只會執行一次的啟動 / 關閉流程。

    啟動時：
    1. 檢查必要設定 (DATABASE_URL、JWT_SECRET)，缺少就直接拒絕啟動。
    2. 自動檢查並建立資料表，這樣就不用手動去資料庫下 SQL 指令。
    3. 開啟資料庫連線池，連不上會在這裡就失敗，而不是等到第一個請求。

    關閉時：把連線池關掉，歸還所有連線。

    app.state.manage_database 為 False 時 (例如測試用記憶體資料) 會跳過 2、3 兩步。
    """
    Settings.validate()
    manage_database = getattr(app.state, "manage_database", True)
    if manage_database:
        init_database()
        await open_pool()
    logger.info("Job board API ready on port %s", Settings.PORT)
    try:
        yield
    finally:
        if manage_database:
            await close_pool()


# --- 4. 錯誤回應：一律是 {"message": ...} ---

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# 這幾種 Pydantic 錯誤代表「欄位根本沒有給」(缺少、空字串、空陣列)
MISSING_ERROR_TYPES = {"missing", "string_too_short", "too_short"}


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    把 FastAPI 預設的 422 驗證錯誤改成 400。

    - 少了必填欄位 -> "Please provide all required fields"
    - JSON 本身壞掉 -> "Invalid request body"
    - 其他 (型別不對等) -> "Invalid value for <欄位>"
    """
    errors = exc.errors()
    if not errors or any(e.get("type") in MISSING_ERROR_TYPES for e in errors):
        message = "Please provide all required fields"
    elif errors[0].get("type") == "json_invalid":
        message = "Invalid request body"
    else:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid value for {field}" if field else "Invalid request body"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})


async def database_exception_handler(request: Request, exc: psycopg.Error):
    # 包含 PoolTimeout 與 statement_timeout 取消的查詢；細節只寫進 log，不回給使用者
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": "Server Error"})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": "Server Error"})


# --- 5. 建立應用程式 ---
def create_app(limiter: RateLimiter | None = None, manage_database: bool = True) -> FastAPI:
    """
    建立並組裝整個 FastAPI 應用程式。

    參數:
    - limiter: 頻率限制器；不給就依 RATE_LIMIT_STORAGE_URI 建立一個
    - manage_database: 啟動時是否建立資料表並開啟連線池 (測試換成記憶體資料時設為 False)
    """
    app = FastAPI(
        title="Job Portal API",
        description="Employers post jobs, freelancers bid on them.",
        docs_url="/api-docs",
        lifespan=lifespan,
    )
    app.state.manage_database = manage_database

    # 中介層是「後加的先執行」：CORS 放在最外層，瀏覽器的預檢請求 (OPTIONS) 不會被計次
    app.state.limiter = limiter or RateLimiter(Settings.RATE_LIMIT_STORAGE_URI)
    app.add_middleware(RateLimitMiddleware, limiter=app.state.limiter)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=Settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset", "Retry-After"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(psycopg.Error, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --- 註冊路由到主程式 (各 router 自己帶 /api/... 前綴) ---
    app.include_router(auth_router)
    app.include_router(jobs_router)
    app.include_router(bids_router)

    # --- 首頁：告訴使用者 API 文件在哪裡 ---
    @app.get("/")
    async def root():
        return {
            "message": "Welcome to Job Portal API",
            "documentation": "Visit /api-docs for API documentation",
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=Settings.HOST, port=Settings.PORT)
