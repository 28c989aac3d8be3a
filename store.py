# store.py
"""
使用者、工作與投標的資料存取層。

所有 SQL 都集中在這裡，路由 (routes/) 只需要處理 HTTP 相關的事情。
每個方法回傳的都是 dict (連線池設定了 dict_row)，查不到資料時回傳 None。

測試時 FastAPI 的 get_store 依賴項會被換成記憶體版本 (tests/conftest.py)，
所以這個類別的方法名稱與回傳欄位就是兩邊共同遵守的介面。
"""

from psycopg import AsyncConnection

# 工作欄位 + 發布者 (雇主) 的公開資料
JOB_SELECT = """
    SELECT j.id, j.title, j.description, j.budget, j.duration, j.skills_required,
           j.posted_by, j.created_at, j.updated_at,
           u.name AS poster_name, u.email AS poster_email
    FROM jobs j
    JOIN users u ON u.id = j.posted_by
"""

# 投標欄位 + 投標者 (接案者) + 投標的工作
BID_SELECT = """
    SELECT b.id, b.job_id, b.freelancer_id, b.bid_amount, b.timeline, b.message,
           b.status, b.created_at, b.updated_at,
           f.name AS freelancer_name, f.email AS freelancer_email,
           j.title AS job_title, j.posted_by AS job_posted_by, j.budget AS job_budget,
           j.duration AS job_duration, j.skills_required AS job_skills_required
    FROM bids b
    JOIN users f ON f.id = b.freelancer_id
    JOIN jobs j ON j.id = b.job_id
"""

# 不含密碼雜湊的使用者欄位
USER_PUBLIC_COLUMNS = "id, name, email, role, created_at, updated_at"


class JobBoardStore:
    def __init__(self, conn: AsyncConnection):
        self.conn = conn

    # =========================================================
    # 使用者 (users)
    # =========================================================

    async def create_user(self, name: str, email: str, hashed_password: str, role: str) -> dict | None:
        """新增使用者；Email 已經註冊過時回傳 None (由 UNIQUE 限制判斷，不會有競態問題)。"""
        async with self.conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO users (name, email, hashed_password, role)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (email) DO NOTHING
                RETURNING {USER_PUBLIC_COLUMNS}
                """,
                (name, email, hashed_password, role)
            )
            return await cur.fetchone()

    async def get_user_by_email(self, email: str) -> dict | None:
        # 唯一會帶出密碼雜湊的查詢，只給登入使用
        async with self.conn.cursor() as cur:
            await cur.execute(
                f"SELECT {USER_PUBLIC_COLUMNS}, hashed_password FROM users WHERE email = %s",
                (email,)
            )
            return await cur.fetchone()

    async def get_user_by_id(self, user_id: int) -> dict | None:
        async with self.conn.cursor() as cur:
            await cur.execute(f"SELECT {USER_PUBLIC_COLUMNS} FROM users WHERE id = %s", (user_id,))
            return await cur.fetchone()

    # =========================================================
    # 工作 (jobs)
    # =========================================================

    async def create_job(
        self,
        posted_by: int,
        title: str,
        description: str,
        budget: float,
        duration: int,
        skills_required: list[str],
    ) -> dict:
        async with self.conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO jobs (title, description, budget, duration, skills_required, posted_by)
                VALUES (%s, %s, %s, %s, %s::text[], %s)
                RETURNING id, title, description, budget, duration, skills_required,
                          posted_by, created_at, updated_at
                """,
                (title, description, budget, duration, skills_required, posted_by)
            )
            return await cur.fetchone()

    async def list_jobs(self, skills: list[str] | None = None) -> list[dict]:
        """
        列出工作 (依建立順序)。

        有給 skills 時，只回傳「至少有一個技能相同」的工作；
        技能比對區分大小寫 ("react" 不會對到 "React")。
        """
        async with self.conn.cursor() as cur:
            if skills:
                # && 是陣列重疊運算子，可以使用 GIN 索引
                await cur.execute(
                    JOB_SELECT + " WHERE j.skills_required && %s::text[] ORDER BY j.id",
                    (skills,)
                )
            else:
                await cur.execute(JOB_SELECT + " ORDER BY j.id")
            return await cur.fetchall()

    async def get_job(self, job_id: int) -> dict | None:
        async with self.conn.cursor() as cur:
            await cur.execute(JOB_SELECT + " WHERE j.id = %s", (job_id,))
            return await cur.fetchone()

    async def list_jobs_by_poster(self, user_id: int) -> list[dict]:
        async with self.conn.cursor() as cur:
            await cur.execute(JOB_SELECT + " WHERE j.posted_by = %s ORDER BY j.id", (user_id,))
            return await cur.fetchall()

    # =========================================================
    # 投標 (bids)
    # =========================================================

    async def create_bid(
        self,
        job_id: int,
        freelancer_id: int,
        bid_amount: float,
        timeline: int,
        message: str,
    ) -> dict | None:
        """
        新增一筆 Pending 狀態的投標。

        同一位接案者已經投過這個工作時回傳 None。
        「檢查是否重複」與「寫入」靠 UNIQUE (job_id, freelancer_id) 限制合成一步，
        就算兩個請求同時送進來，也只有一個會成功。
        """
        async with self.conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO bids (job_id, freelancer_id, bid_amount, timeline, message)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (job_id, freelancer_id) DO NOTHING
                RETURNING id
                """,
                (job_id, freelancer_id, bid_amount, timeline, message)
            )
            created = await cur.fetchone()

        if not created:
            return None
        return await self.get_bid(created["id"])

    async def get_bid(self, bid_id: int) -> dict | None:
        async with self.conn.cursor() as cur:
            await cur.execute(BID_SELECT + " WHERE b.id = %s", (bid_id,))
            return await cur.fetchone()

    async def list_bids_for_job(self, job_id: int) -> list[dict]:
        async with self.conn.cursor() as cur:
            await cur.execute(BID_SELECT + " WHERE b.job_id = %s ORDER BY b.id", (job_id,))
            return await cur.fetchall()

    async def list_bids_by_freelancer(self, freelancer_id: int) -> list[dict]:
        # 最新的排在最前面
        async with self.conn.cursor() as cur:
            await cur.execute(
                BID_SELECT + " WHERE b.freelancer_id = %s ORDER BY b.created_at DESC, b.id DESC",
                (freelancer_id,)
            )
            return await cur.fetchall()

    async def accept_bid(self, bid_id: int) -> dict | None:
        """
        接受一筆投標，並把同一個工作的其他投標全部改成 Rejected。

        兩種狀態變更寫在同一個 UPDATE 裡 (CASE WHEN)，
        所以任何時刻都不會讀到「已接受的投標旁邊還有 Pending 的投標」。
        其他工作的投標完全不受影響；重複接受同一筆投標，結果也一樣。
        """
        async with self.conn.transaction():
            async with self.conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE bids
                    SET status = CASE WHEN id = %s THEN 'Accepted'::bid_status
                                      ELSE 'Rejected'::bid_status END,
                        updated_at = NOW()
                    WHERE job_id = (SELECT job_id FROM bids WHERE id = %s)
                    """,
                    (bid_id, bid_id)
                )
            return await self.get_bid(bid_id)

    async def reject_bid(self, bid_id: int) -> dict | None:
        """只拒絕這一筆投標；同一個工作的其他投標維持原狀。"""
        async with self.conn.transaction():
            async with self.conn.cursor() as cur:
                await cur.execute(
                    "UPDATE bids SET status = 'Rejected', updated_at = NOW() WHERE id = %s",
                    (bid_id,)
                )
            return await self.get_bid(bid_id)
