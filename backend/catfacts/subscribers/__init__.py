"""
購読者（subscribers テーブル）の HTTP エンドポイント。

- schemas: /subscribe 用の Pydantic モデル（アドレスの形式チェック）
- service: 重複チェック付きの登録とメーリングリスト連携
- router: POST /subscribe
"""
