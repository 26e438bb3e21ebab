"""
猫の豆知識（catfacts テーブル）の HTTP エンドポイント。

- schemas: /catfact 用の Pydantic モデル
- router: GET /catfact, POST /catfact/create
"""
