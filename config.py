# config.py
"""
應用程式設定。

所有設定值都從環境變數讀取 (不要把密碼、金鑰直接寫在程式碼裡)。
如果專案目錄下有 `.env` 檔，會先把它載入；正式環境通常由部署平台直接設定環境變數。
設定只在 import 時讀取一次，修改後需要重新啟動伺服器。
"""

import os
from pathlib import Path
from dotenv import load_dotenv

env_path = Path(__file__).parent / '.env'
if env_path.exists():
    load_dotenv(env_path)


class Settings:
    """執行期設定 (全部是類別屬性，直接用 Settings.XXX 讀取)。"""

    # --- 資料庫設定 ---
    # 可以是 libpq 的 conninfo 字串，也可以是 postgresql:// 網址
    DATABASE_URL = os.getenv('DATABASE_URL', '')
    # 同時限制「向連線池借連線」與「每一條 SQL」(statement_timeout) 的等待秒數
    DB_TIMEOUT_SECONDS = float(os.getenv('DB_TIMEOUT_SECONDS', '10'))
    DB_POOL_MIN_SIZE = int(os.getenv('DB_POOL_MIN_SIZE', '1'))
    DB_POOL_MAX_SIZE = int(os.getenv('DB_POOL_MAX_SIZE', '10'))

    # --- 登入憑證 (JWT) ---
    JWT_SECRET = os.getenv('JWT_SECRET', '')
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRES_DAYS = int(os.getenv('JWT_EXPIRES_DAYS', '30'))

    # --- 伺服器 ---
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', '5000'))
    # 以逗號分隔；"*" 代表允許所有來源
    CORS_ORIGINS = [o.strip() for o in os.getenv('CORS_ORIGINS', '*').split(',') if o.strip()]

    # --- 頻率限制 ---
    # async+memory:// 計數器只存在這個程序裡；
    # 多台機器放在同一個負載平衡器後面時，改用 async+redis://host:6379 共用計數器
    RATE_LIMIT_STORAGE_URI = os.getenv('RATE_LIMIT_STORAGE_URI', 'async+memory://')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    @classmethod
    def validate(cls):
        """檢查必要設定；缺少任何一項就丟出 ValueError，讓伺服器直接拒絕啟動。"""
        errors = []

        if not cls.DATABASE_URL:
            errors.append("DATABASE_URL is not set")

        if not cls.JWT_SECRET:
            errors.append("JWT_SECRET is not set")

        if errors:
            raise ValueError("Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors))

        return True
