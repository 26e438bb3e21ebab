# backend/catfacts/notifications/__init__.py

"""
メール送信レイヤ用モジュール群。

日次配信ディスパッチャからは MailTransport.send() だけが見える。
SMTP リレー / Mailgun のどちらを使うかは起動時の設定で決まる。

構成イメージ:
- config: MAIL_BACKEND / SMTP_* / MAILGUN_* の設定
- schemas: メールメッセージと送信結果のスキーマ
- service: MailTransport インターフェースと実装
- mailgun: Mailgun HTTP API クライアント
- factory: アプリ全体で共有する MailTransport の生成
"""
