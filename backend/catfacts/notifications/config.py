# backend/catfacts/notifications/config.py

"""
メール送信（SMTP リレー / Mailgun）に必要な設定値をまとめるモジュール。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from catfacts.utils.config import get_env, get_env_bool, get_env_float, get_env_int


class MailBackend(str, Enum):
    """
    メール送信バックエンドの種別。

    - SMTP: 運用者の資格情報で SMTP リレーに接続（デフォルト）
    - MAILGUN: Mailgun HTTP API 経由
    - LOG: 実送信せずログに出すだけ（ローカル実行用）
    """

    SMTP = "smtp"
    MAILGUN = "mailgun"
    LOG = "log"


class MailConfigError(RuntimeError):
    """メール設定が不正な場合の例外。起動時に致命的エラーとして扱う。"""


@dataclass(frozen=True)
class MailSettings:
    """メール送信用の設定値コンテナ。"""

    backend: MailBackend
    sender: str
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_ssl: bool = False
    mailgun_api_key: Optional[str] = None
    mailgun_domain: Optional[str] = None
    mailgun_api_base_url: str = "https://api.mailgun.net/v3"
    timeout_seconds: float = 10.0


def get_mail_settings() -> MailSettings:
    """
    環境変数からメール設定を読み込む。

    共通:
      - MAIL_BACKEND          (smtp / mailgun / log。デフォルト: smtp)
      - MAIL_FROM             (送信元アドレス)
      - MAIL_TIMEOUT_SECONDS  (デフォルト: 10秒)

    smtp の場合は必須:
      - SMTP_HOST, SMTP_USERNAME, SMTP_PASSWORD
      任意: SMTP_PORT (587), SMTP_USE_SSL (false)

    mailgun の場合は必須:
      - MAILGUN_API_KEY, MAILGUN_DOMAIN
      任意: MAILGUN_API_BASE_URL (https://api.mailgun.net/v3)
    """
    raw_backend = get_env("MAIL_BACKEND", default=MailBackend.SMTP.value, required=False)
    try:
        backend = MailBackend(raw_backend.strip().lower())
    except ValueError as exc:
        raise MailConfigError(
            f"Unsupported MAIL_BACKEND '{raw_backend}'. Use smtp, mailgun or log."
        ) from exc

    timeout_seconds = get_env_float("MAIL_TIMEOUT_SECONDS", default=10.0)

    if backend is MailBackend.SMTP:
        username = get_env("SMTP_USERNAME")
        return MailSettings(
            backend=backend,
            sender=get_env("MAIL_FROM", default=username, required=False),
            smtp_host=get_env("SMTP_HOST"),
            smtp_port=get_env_int("SMTP_PORT", default=587),
            smtp_username=username,
            smtp_password=get_env("SMTP_PASSWORD"),
            smtp_use_ssl=get_env_bool("SMTP_USE_SSL", default=False),
            timeout_seconds=timeout_seconds,
        )

    if backend is MailBackend.MAILGUN:
        domain = get_env("MAILGUN_DOMAIN")
        return MailSettings(
            backend=backend,
            sender=get_env("MAIL_FROM", default=f"Cat Facts <mail@{domain}>", required=False),
            mailgun_api_key=get_env("MAILGUN_API_KEY"),
            mailgun_domain=domain,
            mailgun_api_base_url=get_env(
                "MAILGUN_API_BASE_URL",
                default="https://api.mailgun.net/v3",
                required=False,
            ),
            timeout_seconds=timeout_seconds,
        )

    return MailSettings(
        backend=backend,
        sender=get_env("MAIL_FROM", default="catfacts@localhost", required=False),
        timeout_seconds=timeout_seconds,
    )
