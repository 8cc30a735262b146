"""Telegram bot command configuration."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class TelegramCommand:
    """Declarative bot command definition."""

    command: str
    description: str


class BotCommand(Enum):
    """Enum of bot commands (single source of truth)."""

    DREAM = TelegramCommand("dream", "Create an image via AI")
    RATIOS = TelegramCommand("ratios", "List aspect ratios and image limits")
    HELP = TelegramCommand("help", "Options for /dream")


def telegram_commands() -> list[dict[str, str]]:
    """Return commands formatted for Telegram API."""
    return [
        {"command": entry.value.command, "description": entry.value.description}
        for entry in BotCommand
    ]


def command_name(text: str) -> str | None:
    """Return the bot command a message starts with, if any."""
    if not text.startswith("/"):
        return None
    head = text.split(maxsplit=1)[0]
    name = head[1:].split("@", maxsplit=1)[0].lower()
    known = {entry.value.command for entry in BotCommand}
    return name if name in known else None
