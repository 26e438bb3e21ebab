# backend/catfacts/main.py

"""
バックエンドアプリケーションのエントリーポイント。

主な責務:
- /catfact, /catfact/create エンドポイントを公開する
- /subscribe エンドポイントを公開する
- /api/automation/status でスケジューラの状態を公開する

日次配信スケジューラと一緒に起動する場合は catfacts.runner を使う。
"""

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from catfacts.api.automation_dashboard import router as automation_router
from catfacts.facts.router import router as facts_router
from catfacts.subscribers.router import router as subscribers_router

WELCOME_TEXT = "Welcome to Cat Facts! GET /catfact for a fact, POST /subscribe for a daily email."


def create_app() -> FastAPI:
    """
    FastAPI アプリケーションファクトリ。

    - 豆知識エンドポイント (/catfact, /catfact/create)
    - 購読エンドポイント (/subscribe)
    - スケジューラ状態 (/api/automation/status)
    - ウェルカム / ヘルスチェック (/, /health)
    """
    app = FastAPI(title="Cat Facts Backend")

    # ルーター登録
    app.include_router(facts_router)
    app.include_router(subscribers_router)
    app.include_router(automation_router)

    @app.get("/", response_class=PlainTextResponse, tags=["health"])
    def welcome() -> str:
        return WELCOME_TEXT

    @app.get("/health", response_class=PlainTextResponse, tags=["health"])
    def health_check() -> str:
        """
        簡易ヘルスチェックエンドポイント。
        モニタリングや動作確認用。
        """
        return "It works!"

    return app


# uvicorn 実行時のエントリーポイント
app = create_app()
