# backend/catfacts/store/accessor.py

"""
単一のストアコネクションへのアクセスを直列化するゲート。

- 使用するストアバックエンドは同時に 1 本のコネクションしか持てない前提
- HTTP ハンドラ（スレッドプール上）とディスパッチャ（ワーカースレッド上）が
  同じ StoreAccessor を共有する
- ゲートには到着順（FIFO）で入る。待ち時間に上限を設定でき、
  超過した場合は StoreContentionError を呼び出し側に返す
"""

from __future__ import annotations

import itertools
import logging
import sqlite3
import threading
import time
from collections import deque
from typing import Callable, Deque, Optional, TypeVar

from .config import StoreSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNSET = object()


class StoreContentionError(RuntimeError):
    """ゲート待ちが上限時間を超えた場合の例外。クエリは実行されていない。"""

    def __init__(self, waited_seconds: float) -> None:
        super().__init__(
            f"Timed out after {waited_seconds:.2f}s waiting for the store connection."
        )
        self.waited_seconds = waited_seconds


class _FairGate:
    """
    到着順にロックを渡す排他ゲート。

    threading.Lock は待機スレッドの起床順を保証しないため、
    チケットのキューと Condition で順番を管理する。
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._queue: Deque[int] = deque()
        self._tickets = itertools.count()
        self._held = False

    def acquire(self, timeout: Optional[float]) -> bool:
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            ticket = next(self._tickets)
            self._queue.append(ticket)
            while self._held or self._queue[0] != ticket:
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._queue.remove(ticket)
                    # 先頭が抜けた場合に次の待機者を起こす
                    self._cond.notify_all()
                    return False
                self._cond.wait(remaining)
            self._queue.popleft()
            self._held = True
            return True

    def release(self) -> None:
        with self._cond:
            self._held = False
            self._cond.notify_all()

    @property
    def waiting(self) -> int:
        with self._cond:
            return len(self._queue)


class StoreAccessor:
    """
    ストアコネクションの唯一の所有者。

    with_store(fn) の実行中だけ fn にコネクションを貸し出す。
    fn が投げたバックエンドの例外は加工せずにそのまま伝播させる（リトライしない）。
    """

    def __init__(
        self,
        connection: sqlite3.Connection,
        *,
        gate_timeout: Optional[float] = None,
    ) -> None:
        self._connection = connection
        self._gate_timeout = gate_timeout
        self._gate = _FairGate()

    @property
    def gate_timeout(self) -> Optional[float]:
        return self._gate_timeout

    @property
    def waiting(self) -> int:
        """ゲート待ちの呼び出し数（監視用）。"""
        return self._gate.waiting

    def with_store(
        self,
        fn: Callable[[sqlite3.Connection], T],
        *,
        timeout: Optional[float] | object = _UNSET,
    ) -> T:
        """
        ゲートを取得したうえで fn(connection) を実行し、その戻り値を返す。

        - timeout を省略した場合はコンストラクタの gate_timeout を使う（None は無制限）
        - fn が正常終了したら未コミットのトランザクションをコミットする
        - fn が例外を投げたらロールバックし、例外をそのまま再送出する

        :raises StoreContentionError: 上限時間内にゲートを取得できなかった場合
        """
        wait_limit = self._gate_timeout if timeout is _UNSET else timeout
        started = time.monotonic()

        if not self._gate.acquire(wait_limit):
            waited = time.monotonic() - started
            logger.warning("Store gate wait timed out after %.2fs", waited)
            raise StoreContentionError(waited)

        try:
            try:
                result = fn(self._connection)
            except BaseException:
                if self._connection.in_transaction:
                    self._connection.rollback()
                raise
            if self._connection.in_transaction:
                self._connection.commit()
            return result
        finally:
            self._gate.release()

    def close(self) -> None:
        """コネクションを閉じる。ゲートを取得してから閉じるので実行中のクエリは待つ。"""
        self._gate.acquire(None)
        try:
            self._connection.close()
        finally:
            self._gate.release()


def open_store(settings: StoreSettings) -> StoreAccessor:
    """
    設定に従ってコネクションを 1 本だけ開き、StoreAccessor で包んで返す。

    スレッドをまたいで使うため check_same_thread=False で開く。
    直列化は StoreAccessor のゲートが担う。
    """
    connection = sqlite3.connect(settings.db_path, check_same_thread=False)
    logger.info("Opened store connection: %s", settings.db_path)
    return StoreAccessor(connection, gate_timeout=settings.gate_timeout_seconds)
