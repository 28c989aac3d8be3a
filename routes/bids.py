# routes/bids.py
import logging
from fastapi import APIRouter, Depends, HTTPException, status

from db import get_store
from models import EmployerUser, FreelancerUser, BidCreate, serialize_bid
from routes.auth import require_employer, require_freelancer
from store import JobBoardStore
from utils import parse_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bids", tags=["Bids"])


async def _get_owned_bid(bid_id: str, user: EmployerUser, store: JobBoardStore, action: str) -> dict:
    """
    載入投標並確認目前使用者就是該工作的發布者。

    - 投標不存在 (或 id 格式不對) -> 404 "Bid not found"
    - 不是自己發布的工作 -> 403 "Not authorized to <action> this bid"
    """
    bid = await store.get_bid(parse_id(bid_id, "Bid not found"))
    if not bid:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bid not found")

    if bid["job_posted_by"] != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Not authorized to {action} this bid")
    return bid


# =========================================================
# 固定路徑寫在最前面，"my-bids" 才不會被當成工作 id
# =========================================================

# 1. 我的投標 (限接案者)，最新的排最前面
@router.get("/my-bids")
async def list_my_bids(
    user: FreelancerUser = Depends(require_freelancer),
    store: JobBoardStore = Depends(get_store),
):
    rows = await store.list_bids_by_freelancer(user.id)
    return [serialize_bid(r, job_view="details", with_freelancer=False) for r in rows]


# 2. 對工作投標 (限接案者)；同一個工作只能投一次
@router.post("/{job_id}", status_code=status.HTTP_201_CREATED)
async def create_bid(
    job_id: str,
    body: BidCreate,
    user: FreelancerUser = Depends(require_freelancer),
    store: JobBoardStore = Depends(get_store),
):
    job = await store.get_job(parse_id(job_id, "Job not found"))
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

    row = await store.create_bid(
        job_id=job["id"],
        freelancer_id=user.id,
        bid_amount=body.bid_amount,
        timeline=body.timeline,
        message=body.message,
    )
    if not row:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You have already placed a bid on this job")

    logger.info("Freelancer %s bid on job %s", user.id, job["id"])
    return serialize_bid(row, job_view="summary")


# 3. 某個工作的所有投標 (公開)
@router.get("/{job_id}")
async def list_bids_for_job(job_id: str, store: JobBoardStore = Depends(get_store)):
    job = await store.get_job(parse_id(job_id, "Job not found"))
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

    rows = await store.list_bids_for_job(job["id"])
    return [serialize_bid(r, job_view="owner") for r in rows]


# 4. 接受投標 (限工作發布者)：同一個工作的其他投標會一起被拒絕
@router.patch("/{bid_id}/accept")
async def accept_bid(
    bid_id: str,
    user: EmployerUser = Depends(require_employer),
    store: JobBoardStore = Depends(get_store),
):
    bid = await _get_owned_bid(bid_id, user, store, "accept")
    row = await store.accept_bid(bid["id"])
    logger.info("Employer %s accepted bid %s on job %s", user.id, bid["id"], bid["job_id"])
    return serialize_bid(row, job_view="owner")


# 5. 拒絕投標 (限工作發布者)：只影響這一筆
@router.patch("/{bid_id}/reject")
async def reject_bid(
    bid_id: str,
    user: EmployerUser = Depends(require_employer),
    store: JobBoardStore = Depends(get_store),
):
    bid = await _get_owned_bid(bid_id, user, store, "reject")
    row = await store.reject_bid(bid["id"])
    logger.info("Employer %s rejected bid %s", user.id, bid["id"])
    return serialize_bid(row, job_view="owner")
