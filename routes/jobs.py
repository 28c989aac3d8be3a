# routes/jobs.py
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status

from db import get_store
from models import EmployerUser, JobCreate, serialize_job
from routes.auth import require_employer
from store import JobBoardStore
from utils import parse_id, split_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["Jobs"])


# 1. 發布工作 (限雇主)
@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_job(
    body: JobCreate,
    user: EmployerUser = Depends(require_employer),
    store: JobBoardStore = Depends(get_store),
):
    row = await store.create_job(
        posted_by=user.id,
        title=body.title,
        description=body.description,
        budget=body.budget,
        duration=body.duration,
        skills_required=body.skills_required,
    )
    logger.info("Employer %s posted job %s", user.id, row["id"])
    return serialize_job(row, with_poster=False)


# 2. 瀏覽工作 (公開)，可用 ?skills=React,Go 篩選：只要有一個技能相同就列出
@router.get("")
async def list_jobs(
    skills: str | None = Query(None, description="Comma separated; matches jobs needing any of them"),
    store: JobBoardStore = Depends(get_store),
):
    rows = await store.list_jobs(split_csv(skills) or None)
    return [serialize_job(r) for r in rows]


# 3. 我發布的工作 (限雇主)
# 必須寫在 /{job_id} 前面，否則 "my-jobs" 會被當成 id
@router.get("/my-jobs")
async def list_my_jobs(
    user: EmployerUser = Depends(require_employer),
    store: JobBoardStore = Depends(get_store),
):
    rows = await store.list_jobs_by_poster(user.id)
    return [serialize_job(r, with_poster=False) for r in rows]


# 4. 單一工作詳細資料 (公開)；id 格式不對也一律回 404
@router.get("/{job_id}")
async def get_job(job_id: str, store: JobBoardStore = Depends(get_store)):
    row = await store.get_job(parse_id(job_id, "Job not found"))
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return serialize_job(row)
