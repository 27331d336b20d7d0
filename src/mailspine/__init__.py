"""
mailspine: deployment and schema-migration core for the mailspine platform.

Packages
--------
core        errors, Result, logging, settings, dialects, database adapters
migrations  ordered SQL migrations with checksums and paired rollback scripts
health      health status provider protocol and a check-based provider
deploy      five-step release pipeline, ledger, rollback, deployment lock
ops         OperationResult-returning entry points
cli         ``mailspine`` Typer application
"""

__version__ = "0.1.0"
