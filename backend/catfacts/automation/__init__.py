# backend/catfacts/automation/__init__.py

"""
日次配信（猫の豆知識メール）の自動化モジュール群。

- schemas: サイクルレポート / スケジューラ状態の Pydantic モデル
- dispatcher: ディスパッチサイクル本体（取得 → 全宛先へ送信）
- scheduler: ローカル深夜0時に 1 日 1 回サイクルを起動するスケジューラ
- history / state: スケジューラ状態と直近履歴の共有
- jobs: 手動実行用 CLI
"""
