"""ASGI entrypoint for the dream bot API."""

from dream_bot.api.app import create_app
from dream_bot.containers import build_container

app = create_app(build_container())
