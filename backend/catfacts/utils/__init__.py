"""
共通ユーティリティ。

- config: 環境変数の読み取りヘルパー
"""
