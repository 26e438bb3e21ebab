# backend/catfacts/subscribers/schemas.py

from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator

# local@domain.tld の形だけを確認する簡易チェック（到達可能性までは見ない）
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s.]+$")


class SubscribeRequest(BaseModel):
    """
    POST /subscribe のリクエストボディ。

    アドレスは前後の空白を除いて小文字に正規化する。
    """

    email: str = Field(..., max_length=254, description="購読するメールアドレス")

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not _EMAIL_PATTERN.match(normalized):
            raise ValueError("email is not a valid address")
        return normalized


class SubscribeResponse(BaseModel):
    id: int = Field(..., description="購読者 ID")
    email: str = Field(..., description="登録されたメールアドレス")
