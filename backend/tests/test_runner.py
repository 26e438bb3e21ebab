# backend/tests/test_runner.py
import asyncio
import logging

import pytest

from catfacts import runner as runner_module
from catfacts.notifications.factory import get_mail_transport
from catfacts.notifications.service import LoggingMailTransport
from catfacts.runner import ServerSettings, bootstrap, get_server_settings, race_first_completed
from catfacts.store.repository import count_facts, count_subscribers
from catfacts.store.state import get_store_accessor
from catfacts.utils.config import EnvVarMissingError


def test_race_returns_first_unit_and_cancels_the_other() -> None:
    cancelled = []

    async def _quick() -> str:
        await asyncio.sleep(0)
        return "done"

    async def _forever() -> None:
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    first = asyncio.run(race_first_completed({"http": _quick(), "scheduler": _forever()}))

    assert first == "http"
    assert cancelled == [True]


def test_race_abnormal_termination_also_ends_the_race(caplog) -> None:
    async def _crash() -> None:
        await asyncio.sleep(0)
        raise RuntimeError("bind failed")

    async def _forever() -> None:
        await asyncio.sleep(3600)

    with caplog.at_level(logging.ERROR, logger="catfacts.runner"):
        first = asyncio.run(race_first_completed({"http": _crash(), "scheduler": _forever()}))

    assert first == "http"
    assert any("terminated abnormally" in r.getMessage() for r in caplog.records)


def test_get_server_settings(monkeypatch) -> None:
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    assert get_server_settings() == ServerSettings(host="127.0.0.1", port=9000, log_level="DEBUG")


def test_bootstrap_shares_one_store(monkeypatch, db_path) -> None:
    monkeypatch.setenv("CATFACTS_DB_PATH", str(db_path))
    monkeypatch.setenv("MAIL_BACKEND", "log")
    monkeypatch.setenv("CATFACTS_TIMEZONE", "UTC")

    service = bootstrap(ServerSettings())
    try:
        assert get_store_accessor() is service.store
        assert isinstance(get_mail_transport(), LoggingMailTransport)
        assert service.store.with_store(count_facts) == 0
        assert service.store.with_store(count_subscribers) == 0
        assert db_path.exists()
    finally:
        service.store.close()


def test_bootstrap_fails_without_smtp_credentials(monkeypatch, db_path) -> None:
    monkeypatch.setenv("CATFACTS_DB_PATH", str(db_path))
    monkeypatch.setenv("MAIL_BACKEND", "smtp")
    for name in ("SMTP_USERNAME", "SMTP_HOST", "SMTP_PASSWORD"):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(EnvVarMissingError):
        bootstrap(ServerSettings())

    # 設定エラーの場合はストアを開く前に失敗する
    assert not db_path.exists()


def test_main_returns_1_when_startup_fails(monkeypatch) -> None:
    def _failing_bootstrap(server_settings=None):
        raise EnvVarMissingError("SMTP_HOST")

    served = []
    monkeypatch.setattr(runner_module, "bootstrap", _failing_bootstrap)
    monkeypatch.setattr(runner_module, "serve", lambda service: served.append(service))

    assert runner_module.main() == 1
    assert served == []
