# backend/catfacts/store/schemas.py

"""
ストアから読み出したレコードの Pydantic モデル。

クエリ結果の行からコピーして生成するので、コネクションの寿命とは独立している。
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Fact(BaseModel):
    """catfacts テーブルの 1 行。追記のみで、更新・削除の経路はない。"""

    id: int = Field(..., description="ストアが採番する ID（単調増加）")
    text: str = Field(..., description="猫の豆知識本文")
    created_at: Optional[datetime] = Field(
        None,
        description="ストアが付与する作成時刻",
    )


class Subscriber(BaseModel):
    """subscribers テーブルの 1 行。追記のみ。"""

    id: int = Field(..., description="ストアが採番する ID")
    email: str = Field(..., description="購読者のメールアドレス")
    created_at: Optional[datetime] = Field(
        None,
        description="ストアが付与する作成時刻",
    )
