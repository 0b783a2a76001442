"""
ASGI entry point: ``uvicorn guidesite.main:app``.
"""

from guidesite.app import create_app

app = create_app()
