"""ASGI entry point: ``uvicorn authflow.asgi:app``."""

from authflow.main import create_app

app = create_app()
