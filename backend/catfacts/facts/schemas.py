# backend/catfacts/facts/schemas.py

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

MAX_FACT_LENGTH = 1000


class CatFact(BaseModel):
    """GET /catfact のレスポンス。"""

    fact: str = Field(..., description="猫の豆知識本文")


class CatFactCreateRequest(BaseModel):
    """
    POST /catfact/create のリクエストボディ。

    前後の空白は取り除き、空文字（空白のみを含む）は 422 で弾く。
    """

    fact: str = Field(
        ...,
        min_length=1,
        max_length=MAX_FACT_LENGTH,
        description="登録する豆知識本文",
    )

    @field_validator("fact")
    @classmethod
    def _strip_and_require_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("fact must not be empty")
        return stripped


class CatFactCreateResponse(BaseModel):
    id: int = Field(..., description="ストアが採番した ID")
    fact: str = Field(..., description="登録された豆知識本文")
