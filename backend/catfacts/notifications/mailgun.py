# backend/catfacts/notifications/mailgun.py

"""
Mailgun HTTP API との通信を担当するクライアントモジュール。

- メッセージ送信: POST {base}/{domain}/messages
- メーリングリスト登録: POST {base}/lists/mail@{domain}/members
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from .config import MailSettings


class MailgunClientError(RuntimeError):
    """Mailgun クライアント全般の例外。"""


class MailgunAuthError(MailgunClientError):
    """認証・権限関連のエラー。"""


class MailgunAPIError(MailgunClientError):
    """その他 Mailgun API 呼び出し時のエラー。"""

    def __init__(self, status_code: int, body: Any | None = None) -> None:
        super().__init__(f"Mailgun API error: status_code={status_code} body={body}")
        self.status_code = status_code
        self.body = body


class MailgunClient:
    """
    Mailgun API の薄いラッパークライアント。

    http_client を渡した場合はそれを使う（テストでは httpx.MockTransport を差し込む）。
    """

    def __init__(
        self,
        settings: MailSettings,
        *,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        if not settings.mailgun_api_key or not settings.mailgun_domain:
            raise MailgunClientError(
                "Mailgun settings are not configured. "
                "Please set MAILGUN_API_KEY and MAILGUN_DOMAIN."
            )
        self._settings = settings
        self._http_client = http_client

    @property
    def domain(self) -> str:
        return self._settings.mailgun_domain  # type: ignore[return-value]

    @property
    def list_address(self) -> str:
        return f"mail@{self.domain}"

    def _post(self, path: str, data: Dict[str, str]) -> httpx.Response:
        url = f"{self._settings.mailgun_api_base_url.rstrip('/')}/{path}"
        auth = ("api", self._settings.mailgun_api_key or "")

        try:
            if self._http_client is not None:
                response = self._http_client.post(url, data=data, auth=auth)
            else:
                with httpx.Client(timeout=self._settings.timeout_seconds) as client:
                    response = client.post(url, data=data, auth=auth)
        except httpx.RequestError as exc:  # 接続エラー・タイムアウトなど
            raise MailgunClientError(f"Failed to call Mailgun API: {exc}") from exc

        self._raise_for_status(response)
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        """
        HTTP レスポンスコードに応じて適切な例外を投げる。
        """
        if response.status_code == 401:
            raise MailgunAuthError("Unauthorized. Check MAILGUN_API_KEY.")
        if response.status_code == 403:
            raise MailgunAuthError("Forbidden. Check Mailgun domain permissions.")
        if response.status_code >= 400:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            raise MailgunAPIError(status_code=response.status_code, body=body)

    def send_message(self, *, sender: str, to: str, subject: str, text: str) -> Optional[str]:
        """
        メッセージを 1 通送信し、Mailgun が払い出したメッセージ ID を返す。

        :raises MailgunClientError: 接続エラー・4xx/5xx の場合
        """
        response = self._post(
            f"{self.domain}/messages",
            {"from": sender, "to": to, "subject": subject, "text": text},
        )
        try:
            return response.json().get("id")
        except ValueError:
            return None

    def add_list_member(self, address: str) -> None:
        """
        購読者を mail@{domain} メーリングリストに登録する。

        :raises MailgunClientError: 接続エラー・4xx/5xx の場合
        """
        self._post(
            f"lists/{self.list_address}/members",
            {"address": address, "subscribed": "True"},
        )
