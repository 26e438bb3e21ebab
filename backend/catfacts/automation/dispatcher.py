# backend/catfacts/automation/dispatcher.py

"""
日次配信のディスパッチサイクル本体。

1. 豆知識をランダムに 1 件と、購読者一覧を取得する（ここは全部成功 or 全部失敗）
2. ストアゲートを解放してから、購読者ごとにメールを 1 通ずつ送信する
   （1 件の失敗は記録して次の宛先へ進む。バッチ全体は止めない）
3. 送信数・成功数・失敗数をまとめた CycleReport を返す

このモジュールはスケジューリングを行わない。いつ呼ぶかは scheduler 側が決める。
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from catfacts.notifications.schemas import build_daily_fact_message
from catfacts.notifications.service import MailTransport
from catfacts.store.accessor import StoreAccessor, StoreContentionError
from catfacts.store.repository import fetch_random_fact, list_subscribers
from catfacts.store.schemas import Fact, Subscriber

from .schemas import CycleReport, DispatchStatus, RecipientOutcome

logger = logging.getLogger(__name__)


class DispatchError(RuntimeError):
    """ディスパッチサイクル全体が失敗した場合の基底例外。"""


class DataFetchError(DispatchError):
    """豆知識 / 購読者一覧の取得に失敗した、または豆知識テーブルが空の場合。"""


class RecipientSendError(RuntimeError):
    """
    宛先 1 件の送信失敗。

    ディスパッチャの外には送出せず、ログと RecipientOutcome.error に記録する。
    """

    def __init__(self, recipient: str, cause: object) -> None:
        super().__init__(f"Failed to send daily fact to {recipient}: {cause}")
        self.recipient = recipient
        self.cause = cause


def _read_batch(conn: sqlite3.Connection) -> Tuple[Optional[Fact], List[Subscriber]]:
    fact = fetch_random_fact(conn)
    if fact is None:
        return None, []
    return fact, list_subscribers(conn)


def _decide_status(attempted: int, failed: int) -> DispatchStatus:
    if attempted == 0:
        return DispatchStatus.EMPTY
    if failed == 0:
        return DispatchStatus.SUCCESS
    if failed == attempted:
        return DispatchStatus.FAILURE
    return DispatchStatus.PARTIAL


class NotificationDispatcher:
    """
    ストアとメール Transport を受け取り、ディスパッチサイクルを 1 回実行するサービス。

    同時に複数のサイクルを走らせない前提（スケジューラが逐次呼び出す）。
    """

    def __init__(
        self,
        store: StoreAccessor,
        transport: MailTransport,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._transport = transport
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def run_cycle(self, now: Optional[datetime] = None) -> CycleReport:
        """
        ディスパッチサイクルを 1 回実行して CycleReport を返す。

        :raises DataFetchError: 豆知識・購読者の取得失敗、または豆知識が 0 件の場合。
            この場合メールは 1 通も送らない。
        """
        triggered_at = now or self._clock()

        fact, subscribers = self._fetch_batch()
        logger.info(
            "Dispatching fact_id=%s to %d subscriber(s).",
            fact.id,
            len(subscribers),
        )

        outcomes: List[RecipientOutcome] = []
        for subscriber in subscribers:
            outcomes.append(self._deliver(subscriber, fact))

        succeeded = sum(1 for outcome in outcomes if outcome.success)
        failed = len(outcomes) - succeeded

        report = CycleReport(
            triggered_at=triggered_at,
            finished_at=self._clock(),
            fact_id=fact.id,
            attempted=len(outcomes),
            succeeded=succeeded,
            failed=failed,
            status=_decide_status(len(outcomes), failed),
            outcomes=outcomes,
        )
        logger.info(report.summary())
        return report

    # ---- 内部ヘルパー -------------------------------------------------

    def _fetch_batch(self) -> Tuple[Fact, List[Subscriber]]:
        """
        豆知識と購読者一覧を 1 回のゲート取得で読み出す。

        送信中はゲートを握らないので、HTTP ハンドラを待たせない。
        """
        try:
            fact, subscribers = self._store.with_store(_read_batch)
        except StoreContentionError as exc:
            raise DataFetchError(f"Store is busy; could not read dispatch data: {exc}") from exc
        except sqlite3.Error as exc:
            raise DataFetchError(f"Error when trying to read dispatch data: {exc}") from exc

        if fact is None:
            raise DataFetchError("No cat facts stored; nothing to send.")

        return fact, subscribers

    def _deliver(self, subscriber: Subscriber, fact: Fact) -> RecipientOutcome:
        message = build_daily_fact_message(subscriber.email, fact.text)

        try:
            result = self._transport.send(message)
        except Exception as exc:  # noqa: BLE001 - 1件の失敗でバッチを止めない
            error = RecipientSendError(subscriber.email, exc)
        else:
            if result.success:
                return RecipientOutcome(
                    subscriber_id=subscriber.id,
                    email=subscriber.email,
                    success=True,
                )
            error = RecipientSendError(subscriber.email, result.error or "unknown error")

        logger.warning("%s", error)
        return RecipientOutcome(
            subscriber_id=subscriber.id,
            email=subscriber.email,
            success=False,
            error=str(error),
        )
