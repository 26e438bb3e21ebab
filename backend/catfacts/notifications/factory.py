# backend/catfacts/notifications/factory.py

"""
メール送信 Transport の簡易ファクトリ。

- MailSettings.backend に応じて SMTP / Mailgun / ログ出力の Transport を返す。
- 購読登録時の Mailgun メーリングリスト連携もここから取得する。
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from .config import MailBackend, MailSettings, get_mail_settings
from .mailgun import MailgunClient
from .schemas import MailMessage, SendResult
from .service import (
    LoggingMailTransport,
    MailgunMailTransport,
    MailTransport,
    SmtpMailTransport,
)

_mail_transport: Optional[MailTransport] = None


def build_mail_transport(settings: MailSettings) -> MailTransport:
    """設定から Transport を生成する（共有インスタンスには登録しない）。"""
    if settings.backend is MailBackend.SMTP:
        return SmtpMailTransport(settings)
    if settings.backend is MailBackend.MAILGUN:
        return MailgunMailTransport(settings)
    return LoggingMailTransport()


def get_mail_transport() -> MailTransport:
    """
    アプリ全体で共有する MailTransport を返す。

    初回呼び出し時にのみ環境変数から生成し、それ以降は同じインスタンスを返す。
    """
    global _mail_transport
    if _mail_transport is None:
        _mail_transport = build_mail_transport(get_mail_settings())
    return _mail_transport


def set_mail_transport(transport: MailTransport) -> None:
    global _mail_transport
    _mail_transport = transport


@lru_cache()
def get_mailing_list_client() -> Optional[MailgunClient]:
    """
    Mailgun バックエンドの場合のみメーリングリスト登録用クライアントを返す。

    それ以外のバックエンドでは None（リスト登録は行わない）。
    """
    settings = get_mail_settings()
    if settings.backend is not MailBackend.MAILGUN:
        return None
    return MailgunClient(settings)


def reset_state() -> None:
    """テスト用に共有 Transport をリセットする。"""
    global _mail_transport
    _mail_transport = None
    get_mailing_list_client.cache_clear()


__all__ = [
    "MailMessage",
    "SendResult",
    "MailTransport",
    "LoggingMailTransport",
    "SmtpMailTransport",
    "MailgunMailTransport",
    "build_mail_transport",
    "get_mail_transport",
    "set_mail_transport",
    "get_mailing_list_client",
]
