"""
Content backend for the guide site.

This package provides a FastAPI application that publishes guides, FAQs,
the training-process checklist and site settings from either an embedded
SQLite file or a Postgres database, with session-based admin login.
"""
