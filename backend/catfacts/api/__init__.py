"""
横断的な HTTP エンドポイントとヘルパー。

- errors: ストア例外 → HTTPException 変換
- automation_dashboard: /api/automation/status
"""
