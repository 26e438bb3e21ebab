# backend/catfacts/notifications/schemas.py

"""
メール 1 通分のメッセージと送信結果のスキーマ定義。

※ 送信元の資格情報（SMTP パスワード / API キー）は Transport 実装側だけが持ち、
  MailMessage / SendResult には含めないこと。
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

DAILY_FACT_SUBJECT = "Your daily cat fact!"

DAILY_FACT_BODY_TEMPLATE = (
    "Hey there! You're receiving an email because you're subscribed to Cat Facts, "
    "the number one source for facts about facts. \n\n Did you know? {fact}"
)


class MailMessage(BaseModel):
    """
    メール 1 通分の情報。

    body はプレーンテキスト想定。
    """

    to: str = Field(..., description="宛先メールアドレス（1通につき1宛先）")
    subject: str = Field(..., description="件名")
    body: str = Field(..., description="本文。プレーンテキスト。")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="メッセージ生成時刻（UTC）。",
    )


class SendResult(BaseModel):
    """
    MailTransport.send() の結果。

    配送失敗は例外ではなく success=False と error で表す。
    """

    recipient: str = Field(..., description="宛先メールアドレス")
    success: bool = Field(..., description="リレー / API が受け付けたかどうか")
    message_id: Optional[str] = Field(None, description="受付時に払い出された ID（あれば）")
    error: Optional[str] = Field(None, description="失敗時のエラーメッセージ")


def build_daily_fact_message(recipient: str, fact_text: str) -> MailMessage:
    """日次配信用のメッセージを組み立てる（件名固定、本文に豆知識を埋め込む）。"""
    return MailMessage(
        to=recipient,
        subject=DAILY_FACT_SUBJECT,
        body=DAILY_FACT_BODY_TEMPLATE.format(fact=fact_text),
    )
