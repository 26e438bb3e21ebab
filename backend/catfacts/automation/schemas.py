# backend/catfacts/automation/schemas.py

"""
日次配信（ディスパッチサイクル）まわりの共通スキーマ定義。

CycleReport はサイクルごとに新しく作られ、ログ出力と直近履歴の表示に使ったら捨てる。
ストアには永続化しない。
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class DispatchStatus(str, Enum):
    """
    1 サイクル全体の配信ステータス。

    - SUCCESS: 全宛先に送信できた
    - PARTIAL: 一部の宛先で失敗した
    - FAILURE: 全宛先で失敗した
    - EMPTY: 購読者が 0 人（送信試行なし。エラーではない）
    """

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"
    EMPTY = "empty"


class SchedulerState(str, Enum):
    """
    DailyScheduler の状態。

    - WAITING: 次のトリガー時刻まで待機中
    - DISPATCHING: ディスパッチサイクル実行中
    """

    WAITING = "waiting"
    DISPATCHING = "dispatching"


class RecipientOutcome(BaseModel):
    """宛先 1 件分の送信結果。"""

    subscriber_id: int = Field(..., description="購読者 ID")
    email: str = Field(..., description="宛先メールアドレス")
    success: bool = Field(..., description="送信に成功したかどうか")
    error: Optional[str] = Field(None, description="失敗時のエラーメッセージ")


class CycleReport(BaseModel):
    """
    ディスパッチサイクル 1 回分の結果。

    attempted == succeeded + failed が常に成り立つ。
    """

    triggered_at: datetime = Field(..., description="サイクル開始時刻")
    finished_at: datetime = Field(..., description="サイクル終了時刻")
    fact_id: int = Field(..., description="配信した豆知識の ID")
    attempted: int = Field(0, ge=0, description="送信を試みた宛先数")
    succeeded: int = Field(0, ge=0, description="送信に成功した宛先数")
    failed: int = Field(0, ge=0, description="送信に失敗した宛先数")
    status: DispatchStatus = Field(..., description="サイクル全体のステータス")
    outcomes: List[RecipientOutcome] = Field(
        default_factory=list,
        description="宛先ごとの結果（購読者の登録順）",
    )

    def summary(self) -> str:
        """ログ出力用の 1 行サマリ。"""
        return (
            f"Dispatch cycle {self.status.value}: fact_id={self.fact_id} "
            f"attempted={self.attempted} succeeded={self.succeeded} failed={self.failed}"
        )


class CycleRecord(BaseModel):
    """
    スケジューラが記録するサイクル履歴 1 件。

    サイクルが DataFetchError などで失敗した場合は report が None で error が入る。
    """

    trigger_at: datetime = Field(..., description="予定されていたトリガー時刻（ローカル深夜0時）")
    started_at: datetime = Field(..., description="実際に開始した時刻")
    finished_at: datetime = Field(..., description="終了した時刻")
    report: Optional[CycleReport] = Field(None, description="成功時のサイクルレポート")
    error: Optional[str] = Field(None, description="サイクル失敗時のエラーメッセージ")


class SchedulerStatus(BaseModel):
    """
    /api/automation/status で返すスケジューラの現在状態。
    """

    state: SchedulerState = Field(..., description="現在の状態")
    next_trigger_at: Optional[datetime] = Field(None, description="次のトリガー時刻")
    last_dispatch_date: Optional[date] = Field(None, description="最後に配信した暦日")
    recent_cycles: List[CycleRecord] = Field(
        default_factory=list,
        description="直近のサイクル履歴（新しい順）",
    )
