# db.py
import asyncio
import logging
from fastapi import Depends
from psycopg_pool import AsyncConnectionPool
from psycopg.rows import dict_row

from config import Settings
from store import JobBoardStore

logger = logging.getLogger(__name__)

# 宣告全域連線池變數，預設為 None (由 lifespan 或第一個請求開啟)
_pool: AsyncConnectionPool | None = None

# 保護連線池的建立：同時進來的兩個請求只會有一個真的去開連線池，
# 另一個會等它開好後直接拿同一個 _pool
_pool_lock = asyncio.Lock()


def _connection_kwargs() -> dict:
    """
    每一條連線建立時要套用的參數。

    - row_factory: 讓查詢結果變成 Dictionary (例如 record['id']) 而不是 Tuple
    - autocommit : 單一 SQL 直接生效；需要多步驟的地方會自己開 conn.transaction()
    - options    : 在伺服器端設定 statement_timeout，避免慢查詢把連線佔住
    """
    timeout_ms = int(Settings.DB_TIMEOUT_SECONDS * 1000)
    return {
        "row_factory": dict_row,
        "autocommit": True,
        "options": f"-c statement_timeout={timeout_ms}",
    }


async def open_pool() -> AsyncConnectionPool:
    """
    開啟 (或取得已開啟的) 共用連線池。

    用途：
    1. 伺服器啟動時由 lifespan 呼叫一次，提早發現資料庫連不上的問題。
    2. 如果沒有經過 lifespan (例如單獨掛載路由)，第一個請求進來時才建立 (Lazy Loading)。

    建立過程以 asyncio.Lock 保護，並在拿到鎖之後再檢查一次 _pool，
    所以不論同時有多少個請求，整個程序只會建立一個連線池。
    """
    global _pool

    if _pool is not None:
        return _pool

    async with _pool_lock:
        # 拿到鎖之後再確認一次：可能別人已經在我們等待時開好了
        if _pool is None:
            logger.info("Initializing database connection pool")
            pool = AsyncConnectionPool(
                conninfo=Settings.DATABASE_URL,
                kwargs=_connection_kwargs(),
                min_size=Settings.DB_POOL_MIN_SIZE,
                max_size=Settings.DB_POOL_MAX_SIZE,
                timeout=Settings.DB_TIMEOUT_SECONDS,  # 借連線最多等這麼久，超過就丟出 PoolTimeout
                open=False,  # 先設定好參數，暫不開啟，由下方 open() 觸發
            )
            try:
                await pool.open()
            except Exception:
                logger.exception("Could not open the connection pool")
                raise
            _pool = pool
            logger.info("Database connection pool opened")

    return _pool


async def close_pool():
    """關閉連線池 (伺服器關閉時由 lifespan 呼叫)。"""
    global _pool

    async with _pool_lock:
        if _pool is not None:
            await _pool.close()
            _pool = None
            logger.info("Database connection pool closed")


async def getDB():
    """
    FastAPI 的 Dependency (依賴項) 函式。

    用途：
    1. 從連線池借出一條連線給這次請求使用。
    2. 使用 yield 讓 FastAPI 在請求結束後自動把連線還回連線池。
    3. 借連線最多等 DB_TIMEOUT_SECONDS 秒，等不到會丟出 PoolTimeout (由 main.py 轉成 500)。
    """
    pool = await open_pool()
    # 使用 context manager (async with) 取得連線，自動處理借出與歸還
    async with pool.connection() as conn:
        yield conn


async def get_store(conn=Depends(getDB)) -> JobBoardStore:
    """回傳這次請求使用的資料存取物件；測試時會被 dependency_overrides 換成記憶體版本。"""
    return JobBoardStore(conn)
