# models/bid.py
from enum import Enum
from pydantic import BaseModel, Field

from .user import NonEmptyStr


class BidStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class BidCreate(BaseModel):
    bid_amount: float = Field(alias="bidAmount")
    timeline: int  # 天數
    message: NonEmptyStr


# 不同畫面需要的工作欄位：
# - summary: 剛投標完的回應，只需要標題
# - owner  : 工作的投標列表 / 接受、拒絕的回應，多了發布者 id
# - details: 接案者的「我的投標」，需要預算、天數與技能
JOB_FIELDS = {
    "summary": ("title",),
    "owner": ("title", "postedBy"),
    "details": ("title", "budget", "duration", "skillsRequired"),
}

_JOB_COLUMNS = {
    "title": "job_title",
    "postedBy": "job_posted_by",
    "budget": "job_budget",
    "duration": "job_duration",
    "skillsRequired": "job_skills_required",
}


def serialize_bid(row: dict, job_view: str = "owner", with_freelancer: bool = True) -> dict:
    """
    把資料庫的投標資料轉成 API 回傳的格式 (camelCase)。

    參數:
    - job_view: 要展開哪些工作欄位 (見上方 JOB_FIELDS)
    - with_freelancer: True 時附上接案者的 name / email，False 時只給 id
    """
    job = {"id": row["job_id"]}
    for field in JOB_FIELDS[job_view]:
        value = row[_JOB_COLUMNS[field]]
        job[field] = list(value) if field == "skillsRequired" else value

    if with_freelancer:
        freelancer = {"id": row["freelancer_id"], "name": row["freelancer_name"], "email": row["freelancer_email"]}
    else:
        freelancer = row["freelancer_id"]

    return {
        "id": row["id"],
        "job": job,
        "freelancer": freelancer,
        "bidAmount": row["bid_amount"],
        "timeline": row["timeline"],
        "message": row["message"],
        "status": row["status"],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }
