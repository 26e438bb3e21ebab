# backend/catfacts/runner.py

"""
HTTP サーバと日次配信スケジューラを 1 プロセスで同時に動かすランナー。

- bootstrap(): 設定読み込み・ストア接続・テーブル作成・メール Transport 生成
  （ここでの失敗は致命的。サーバもスケジューラも起動しない）
- serve(): uvicorn サーバと DailyScheduler.run_forever() を競争させ、
  どちらか先に終了した時点でサービス全体を終了する

両者は同じ StoreAccessor を共有する。
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Dict, Optional

import uvicorn
from fastapi import FastAPI

from catfacts.automation.config import get_scheduler_settings
from catfacts.automation.dispatcher import NotificationDispatcher
from catfacts.automation.scheduler import DailyScheduler
from catfacts.automation.state import get_dispatch_history
from catfacts.main import create_app
from catfacts.notifications.config import get_mail_settings
from catfacts.notifications.factory import build_mail_transport, set_mail_transport
from catfacts.store.accessor import StoreAccessor, open_store
from catfacts.store.config import get_store_settings
from catfacts.store.schema import init_schema
from catfacts.store.state import set_store_accessor
from catfacts.utils.config import get_env, get_env_int

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerSettings:
    """HTTP サーバの設定値コンテナ。"""

    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"


def get_server_settings() -> ServerSettings:
    """
    任意:
      - HOST       (デフォルト: 0.0.0.0)
      - PORT       (デフォルト: 8000)
      - LOG_LEVEL  (デフォルト: INFO)
    """
    return ServerSettings(
        host=get_env("HOST", default="0.0.0.0", required=False),
        port=get_env_int("PORT", default=8000),
        log_level=get_env("LOG_LEVEL", default="INFO", required=False).upper(),
    )


@dataclass
class CatFactsService:
    """起動済みの構成要素一式。"""

    app: FastAPI
    store: StoreAccessor
    scheduler: DailyScheduler
    server_settings: ServerSettings


def bootstrap(server_settings: Optional[ServerSettings] = None) -> CatFactsService:
    """
    サービスを組み立てる。

    :raises EnvVarMissingError / MailConfigError / ValueError: 設定不備
    :raises sqlite3.Error: ストアに接続できない、テーブルを作成できない
    """
    server_settings = server_settings or get_server_settings()
    mail_settings = get_mail_settings()
    scheduler_settings = get_scheduler_settings()

    store = open_store(get_store_settings())
    init_schema(store)
    set_store_accessor(store)

    transport = build_mail_transport(mail_settings)
    set_mail_transport(transport)
    logger.info("Mail backend: %s", mail_settings.backend.value)

    scheduler = DailyScheduler(
        NotificationDispatcher(store, transport),
        tz=scheduler_settings.tz,
        retry_backoff_seconds=scheduler_settings.retry_backoff_seconds,
        history=get_dispatch_history(),
    )

    return CatFactsService(
        app=create_app(),
        store=store,
        scheduler=scheduler,
        server_settings=server_settings,
    )


async def race_first_completed(units: Dict[str, Awaitable[object]]) -> str:
    """
    複数の処理単位を同時に走らせ、最初に終了したものの名前を返す。

    正常終了・異常終了を問わず、1 つが終わった時点で残りはキャンセルする。
    """
    tasks = {
        asyncio.ensure_future(awaitable): name for name, awaitable in units.items()
    }
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise

    first: Optional[str] = None
    for task, name in tasks.items():
        if task not in done:
            continue
        first = first or name
        if task.cancelled():
            logger.warning("Unit '%s' was cancelled.", name)
        elif task.exception() is not None:
            logger.error("Unit '%s' terminated abnormally.", name, exc_info=task.exception())
        else:
            logger.info("Unit '%s' finished.", name)

    for task in pending:
        logger.info("Stopping unit '%s'.", tasks[task])
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)

    return first or ""


async def serve(service: CatFactsService) -> str:
    """uvicorn サーバとスケジューラを競争させる。先に終わった方の名前を返す。"""
    settings = service.server_settings
    server = uvicorn.Server(
        uvicorn.Config(
            service.app,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
        )
    )
    return await race_first_completed(
        {
            "http": server.serve(),
            "scheduler": service.scheduler.run_forever(),
        }
    )


def main() -> int:
    """
    console_scripts エントリーポイント（catfacts-serve）。

    例:
        CATFACTS_DB_PATH=catfacts.db MAIL_BACKEND=log catfacts-serve
    """
    server_settings = get_server_settings()
    logging.basicConfig(
        level=server_settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        service = bootstrap(server_settings)
    except Exception:  # noqa: BLE001 - 起動時の失敗はすべて致命的
        logger.exception("Startup failed; not starting server or scheduler.")
        return 1

    finished = asyncio.run(serve(service))
    logger.info("Service stopped ('%s' ended first).", finished)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
