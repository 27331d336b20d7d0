"""
Core primitives shared by every mailspine package.

Modules
-------
errors      MailspineError hierarchy with categories and context
result      Ok / Err result envelope
logging     structlog configuration (console or ECS JSON)
settings    MailspineSettings (pydantic-settings, ``MAILSPINE_`` prefix)
dialect     SQL placeholders and DDL fragments per backend
protocols   Connection / Cursor protocols
adapters    SQLite and PostgreSQL adapters, ``get_adapter(url)``
hashing     SHA-256 content checksums
timestamps  UTC helpers
timeout     ``run_with_timeout`` for bounded steps
"""
