"""ASGI entrypoint for the photo intelligence API."""

from photo_intelligence.api.app import create_app
from photo_intelligence.containers import build_container

app = create_app(build_container())
