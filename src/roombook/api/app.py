"""ASGI entry point (``uvicorn roombook.api.app:app``)."""

from roombook.api.factory import create_app
from roombook.observability.logging import configure_logging

configure_logging()

app = create_app()
