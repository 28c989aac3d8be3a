# logger.py
import logging
import sys

# 範例輸出：[2024-05-01 12:00:00,123] 42 routes.bids - INFO - Bid 7 accepted ...
LOG_FORMAT = "[%(asctime)s] %(lineno)d %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(level: str = "INFO"):
    """
    設定根 logger (整個程序只會設定一次)。

    之後再呼叫只會調整等級，不會重複加上 handler，
    否則同一行 log 會被印出好幾次。
    """
    global _configured

    if _configured:
        logging.getLogger().setLevel(level.upper())
        return

    logging.basicConfig(
        stream=sys.stderr,
        format=LOG_FORMAT,
        level=level.upper(),
    )
    # uvicorn 自己的 access log 已經會記錄每一個請求，這裡調低避免重複
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    _configured = True
