# models/job.py
from typing import Annotated
from pydantic import BaseModel, Field, field_validator

from .user import NonEmptyStr


def normalize_skills(value) -> list:
    """
    把技能清單整理成標準格式。

    前端通常送 JSON 陣列 ["React", "Go"]；
    為了相容舊的表單，也接受逗號分隔的字串 "React, Go"。
    每個技能會去掉前後空白，空的直接丟掉，順序維持不變。
    """
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return value  # 交給 Pydantic 的型別檢查回報錯誤

    tags = []
    for tag in value:
        if isinstance(tag, str):
            tag = tag.strip()
            if not tag:
                continue
        tags.append(tag)
    return tags


class JobCreate(BaseModel):
    title: NonEmptyStr
    description: NonEmptyStr
    budget: float
    duration: int  # 天數
    skills_required: Annotated[list[NonEmptyStr], Field(alias="skillsRequired", min_length=1)]

    @field_validator("skills_required", mode="before")
    @classmethod
    def _split_skills(cls, value):
        return normalize_skills(value)


def serialize_job(row: dict, with_poster: bool = True) -> dict:
    """把工作資料轉成 API 格式；with_poster 為 True 時 postedBy 是發布者資料，否則只有 id。"""
    if with_poster:
        posted_by = {"id": row["posted_by"], "name": row["poster_name"], "email": row["poster_email"]}
    else:
        posted_by = row["posted_by"]

    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "budget": row["budget"],
        "duration": row["duration"],
        "skillsRequired": list(row["skills_required"]),
        "postedBy": posted_by,
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }
