"""Telegram API client adapter."""

import json
from dataclasses import dataclass
from typing import Protocol

import httpx


class TelegramClient(Protocol):
    """Interface for Telegram API interactions."""

    async def send_message(
        self, chat_id: int, text: str, reply_markup: dict | None = None
    ) -> int:
        """Send a text message and return its message id."""

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        reply_markup: dict | None = None,
    ) -> None:
        """Replace the text of a message sent earlier."""

    async def send_photos(
        self, chat_id: int, photos: list[bytes], caption: str | None = None
    ) -> None:
        """Send one photo, or an album when there are several."""

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        """Delete a message."""

    async def answer_callback_query(
        self, callback_query_id: str, text: str | None = None
    ) -> None:
        """Answer a Telegram callback query."""

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""


@dataclass
class HttpxTelegramClient:
    """Telegram client implemented with httpx."""

    bot_token: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, bot_token: str) -> "HttpxTelegramClient":
        """Create a Telegram client with a managed httpx session."""
        return cls(bot_token=bot_token, http_client=httpx.AsyncClient())

    def _url(self, method: str) -> str:
        return f"https://api.telegram.org/bot{self.bot_token}/{method}"

    async def send_message(
        self, chat_id: int, text: str, reply_markup: dict | None = None
    ) -> int:
        """Send a message using Telegram's sendMessage API."""
        payload: dict[str, object] = {"chat_id": chat_id, "text": text}
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        response = await self.http_client.post(
            self._url("sendMessage"), json=payload, timeout=10
        )
        response.raise_for_status()
        return int(response.json()["result"]["message_id"])

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        reply_markup: dict | None = None,
    ) -> None:
        """Edit a message using Telegram's editMessageText API."""
        payload: dict[str, object] = {
            "chat_id": chat_id,
            "message_id": message_id,
            "text": text,
        }
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        response = await self.http_client.post(
            self._url("editMessageText"), json=payload, timeout=10
        )
        response.raise_for_status()

    async def send_photos(
        self, chat_id: int, photos: list[bytes], caption: str | None = None
    ) -> None:
        """Upload images with sendPhoto or sendMediaGroup."""
        if len(photos) == 1:
            data = {"chat_id": str(chat_id)}
            if caption:
                data["caption"] = caption
            response = await self.http_client.post(
                self._url("sendPhoto"),
                data=data,
                files={"photo": ("image_0.png", photos[0], "image/png")},
                timeout=60,
            )
            response.raise_for_status()
            return
        media: list[dict[str, object]] = [
            {"type": "photo", "media": f"attach://image_{index}"}
            for index in range(len(photos))
        ]
        if caption:
            media[0]["caption"] = caption
        files = {
            f"image_{index}": (f"image_{index}.png", photo, "image/png")
            for index, photo in enumerate(photos)
        }
        response = await self.http_client.post(
            self._url("sendMediaGroup"),
            data={"chat_id": str(chat_id), "media": json.dumps(media)},
            files=files,
            timeout=60,
        )
        response.raise_for_status()

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        """Delete a message using Telegram's deleteMessage API."""
        response = await self.http_client.post(
            self._url("deleteMessage"),
            json={"chat_id": chat_id, "message_id": message_id},
            timeout=10,
        )
        response.raise_for_status()

    async def answer_callback_query(
        self, callback_query_id: str, text: str | None = None
    ) -> None:
        """Answer a callback query using Telegram's API."""
        payload: dict[str, object] = {"callback_query_id": callback_query_id}
        if text is not None:
            payload["text"] = text
        response = await self.http_client.post(
            self._url("answerCallbackQuery"), json=payload, timeout=10
        )
        response.raise_for_status()

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""
        response = await self.http_client.post(
            self._url("setMyCommands"), json={"commands": commands}, timeout=10
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()
