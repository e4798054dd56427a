"""ASGI entry point: uvicorn inboxly.api.app:app"""

from .factory import create_app

app = create_app()
