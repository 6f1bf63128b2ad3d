"""ASGI entrypoint for the Ziora API."""

from ziora.api.app import create_app
from ziora.containers import build_container

app = create_app(build_container())
