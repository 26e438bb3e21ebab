# backend/catfacts/notifications/service.py

"""
メール送信インターフェース（MailTransport）と実装。

- MailMessage を受け取る send() -> SendResult インターフェース
- SMTP リレーに送る SmtpMailTransport（デフォルト）
- Mailgun API に送る MailgunMailTransport
- ログ出力のみ行う LoggingMailTransport

どの実装も宛先ごとの配送失敗は例外にせず SendResult(success=False) で返す。
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Protocol

from .config import MailSettings
from .mailgun import MailgunClient, MailgunClientError
from .schemas import MailMessage, SendResult

logger = logging.getLogger(__name__)


class MailTransport(Protocol):
    """
    メール送信の最小インターフェース。

    実装例:
    - SmtpMailTransport: SMTP リレー経由で送信
    - MailgunMailTransport: Mailgun API 経由で送信
    - LoggingMailTransport: ログ出力のみ
    """

    def send(self, message: MailMessage) -> SendResult:  # pragma: no cover - Protocol
        ...


class LoggingMailTransport:
    """
    MailMessage を Python の logger に記録するだけの Transport。

    - ローカル実行・動作確認用
    - 実際の外部サービスへの送信は行わない
    """

    def __init__(self, logger_: logging.Logger | None = None) -> None:
        self._logger = logger_ or logger

    def send(self, message: MailMessage) -> SendResult:
        self._logger.info("[mail] to=%s subject=%s %s", message.to, message.subject, message.body)
        return SendResult(recipient=message.to, success=True)


class SmtpMailTransport:
    """
    SMTP リレーへの送信。

    1 回の send() につき 1 接続・1 メッセージ。
    SMTP_USE_SSL=true なら SMTPS、それ以外は STARTTLS で接続してからログインする。
    """

    def __init__(self, settings: MailSettings) -> None:
        self._settings = settings

    def _build_email(self, message: MailMessage) -> EmailMessage:
        email = EmailMessage()
        email["From"] = self._settings.sender
        email["To"] = message.to
        email["Subject"] = message.subject
        email["Message-ID"] = make_msgid()
        email.set_content(message.body)
        return email

    def _connect(self) -> smtplib.SMTP:
        host = self._settings.smtp_host or ""
        port = self._settings.smtp_port
        timeout = self._settings.timeout_seconds
        if self._settings.smtp_use_ssl:
            return smtplib.SMTP_SSL(host, port, timeout=timeout)
        server = smtplib.SMTP(host, port, timeout=timeout)
        try:
            server.starttls()
        except (smtplib.SMTPException, OSError):
            server.close()
            raise
        return server

    def send(self, message: MailMessage) -> SendResult:
        email = self._build_email(message)
        try:
            with self._connect() as server:
                server.login(self._settings.smtp_username or "", self._settings.smtp_password or "")
                refused = server.send_message(email)
        except (smtplib.SMTPException, OSError) as exc:
            return SendResult(recipient=message.to, success=False, error=str(exc))

        if refused:
            return SendResult(
                recipient=message.to,
                success=False,
                error=f"Recipient refused by relay: {refused}",
            )

        return SendResult(recipient=message.to, success=True, message_id=email["Message-ID"])


class MailgunMailTransport:
    """
    Mailgun の messages API への送信。
    """

    def __init__(self, settings: MailSettings, client: MailgunClient | None = None) -> None:
        self._settings = settings
        self._client = client or MailgunClient(settings)

    def send(self, message: MailMessage) -> SendResult:
        try:
            message_id = self._client.send_message(
                sender=self._settings.sender,
                to=message.to,
                subject=message.subject,
                text=message.body,
            )
        except MailgunClientError as exc:
            return SendResult(recipient=message.to, success=False, error=str(exc))

        return SendResult(recipient=message.to, success=True, message_id=message_id)
