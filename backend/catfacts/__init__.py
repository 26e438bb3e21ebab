# backend/catfacts/__init__.py
"""
Cat Facts backend application package.

This package contains:
- main: FastAPI application entrypoint
- runner: HTTP server + daily scheduler process runner
- store: single-connection store gate, schema and queries
- notifications: mail transports (SMTP relay / Mailgun / log)
- automation: daily notification dispatcher and scheduler
- facts / subscribers: HTTP routers
"""
