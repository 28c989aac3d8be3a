# init_db.py
import logging
import psycopg

from config import Settings

logger = logging.getLogger(__name__)

# 建表 SQL：全部使用 IF NOT EXISTS，每次啟動重複執行也不會出錯
INIT_SQL = """
-- 1. 列舉型別：使用者角色與投標狀態
DO $$ BEGIN
    IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'user_role') THEN
        CREATE TYPE user_role AS ENUM ('employer', 'freelancer');
    END IF;
    IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'bid_status') THEN
        CREATE TYPE bid_status AS ENUM ('Pending', 'Accepted', 'Rejected');
    END IF;
END $$;

-- 2. 使用者 (users)
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    email VARCHAR(255) NOT NULL UNIQUE,
    hashed_password VARCHAR(255) NOT NULL,
    role user_role NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- 3. 工作 (jobs)，由雇主 (employer) 發布
CREATE TABLE IF NOT EXISTS jobs (
    id SERIAL PRIMARY KEY,
    title VARCHAR(255) NOT NULL,
    description TEXT NOT NULL,
    budget DOUBLE PRECISION NOT NULL,
    duration INT NOT NULL,                 -- 天數
    skills_required TEXT[] NOT NULL,
    posted_by INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- 4. 投標 (bids)，每位接案者對同一個工作只能投一次
CREATE TABLE IF NOT EXISTS bids (
    id SERIAL PRIMARY KEY,
    job_id INT NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
    freelancer_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    bid_amount DOUBLE PRECISION NOT NULL,
    timeline INT NOT NULL,                 -- 天數
    message TEXT NOT NULL,
    status bid_status NOT NULL DEFAULT 'Pending',
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (job_id, freelancer_id)         -- 重複投標由資料庫擋下
);

-- 5. 索引：GIN 索引讓 skills_required && ARRAY[...] 的技能篩選不必掃整張表
CREATE INDEX IF NOT EXISTS idx_jobs_posted_by ON jobs(posted_by);
CREATE INDEX IF NOT EXISTS idx_jobs_skills ON jobs USING GIN (skills_required);
CREATE INDEX IF NOT EXISTS idx_bids_job ON bids(job_id);
CREATE INDEX IF NOT EXISTS idx_bids_freelancer ON bids(freelancer_id);
"""


def init_database(conninfo: str | None = None):
    """
    資料庫初始化函式：
    1. 建立列舉型別 (user_role、bid_status)。
    2. 建立 users / jobs / bids 三張表格與索引。

    參數:
    - conninfo: 要初始化的資料庫；不給就使用 Settings.DATABASE_URL (測試會傳入測試資料庫)

    這裡使用同步連線 (psycopg.connect)，因為初始化只在伺服器開始接受請求前執行一次。
    失敗時會寫 log 並把錯誤往上丟，讓伺服器啟動失敗，而不是帶著壞掉的資料庫繼續跑。
    """
    logger.info("Checking database schema")
    try:
        with psycopg.connect(conninfo or Settings.DATABASE_URL) as conn:
            with conn.cursor() as cur:
                cur.execute(INIT_SQL)
            conn.commit()
    except psycopg.Error:
        logger.exception("Database initialization failed")
        raise
    logger.info("Database schema ready")


# 也可以單獨執行：python init_db.py
if __name__ == "__main__":
    from logger import setup_logging

    setup_logging(Settings.LOG_LEVEL)
    init_database()
