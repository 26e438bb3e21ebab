# backend/catfacts/subscribers/service.py

"""
購読者登録のサービス層。

- 重複チェックと挿入を 1 回のゲート取得内で行う
- Mailgun バックエンドの場合は、挿入後にメーリングリストにも登録する
  （ベストエフォート。失敗してもログに残すだけで登録自体は成功扱い）
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from catfacts.notifications.mailgun import MailgunClient, MailgunClientError
from catfacts.store.accessor import StoreAccessor
from catfacts.store.repository import find_subscriber_by_email, insert_subscriber
from catfacts.store.schemas import Subscriber

logger = logging.getLogger(__name__)


class DuplicateSubscriberError(ValueError):
    """既に登録済みのアドレスを登録しようとした場合の例外。"""

    def __init__(self, email: str) -> None:
        super().__init__(f"{email} is already subscribed.")
        self.email = email


class SubscriberService:
    def __init__(
        self,
        store: StoreAccessor,
        *,
        mailing_list: Optional[MailgunClient] = None,
    ) -> None:
        self._store = store
        self._mailing_list = mailing_list

    def register(self, email: str) -> Subscriber:
        """
        購読者を登録して返す。

        :raises DuplicateSubscriberError: 同じアドレスが登録済みの場合
        :raises StoreContentionError / sqlite3.Error: ストアのエラーはそのまま伝播
        """

        def _register(conn: sqlite3.Connection) -> Subscriber:
            if find_subscriber_by_email(conn, email) is not None:
                raise DuplicateSubscriberError(email)
            return insert_subscriber(conn, email)

        subscriber = self._store.with_store(_register)
        logger.info("Registered subscriber id=%s", subscriber.id)

        if self._mailing_list is not None:
            try:
                self._mailing_list.add_list_member(subscriber.email)
            except MailgunClientError as exc:
                logger.warning(
                    "Failed to add subscriber id=%s to mailing list: %s",
                    subscriber.id,
                    exc,
                )

        return subscriber
