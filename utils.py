# utils.py
from fastapi import HTTPException, status

# PostgreSQL SERIAL (int4) 主鍵的上限
MAX_ID = 2**31 - 1


def parse_id(raw: str, not_found_detail: str) -> int:
    """
    把網址中的 id 片段轉成資料列的 id。

    格式不對的 id (例如 "abc"、"-1"、超過 int4 範圍) 不可能對應到任何資料，
    所以一律回傳 404，訊息與「找不到資料」相同。
    """
    raw = raw.strip()
    if not raw.isdigit() or not raw.isascii():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found_detail)

    value = int(raw)
    if value < 1 or value > MAX_ID:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found_detail)
    return value


def split_csv(value: str | None) -> list[str]:
    """ "React, Go," -> ["React", "Go"] """
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
