"""Pydantic models for the Telegram webhook payload fields the bot reads."""

from pydantic import BaseModel, Field


class TelegramUser(BaseModel):
    """Telegram user payload."""

    id: int
    is_bot: bool | None = None
    first_name: str | None = None
    username: str | None = None

    @property
    def mention(self) -> str:
        if self.username:
            return f"@{self.username}"
        return self.first_name or str(self.id)


class TelegramChat(BaseModel):
    """Telegram chat payload."""

    id: int
    type: str


class TelegramMessage(BaseModel):
    """Telegram message payload."""

    message_id: int
    chat: TelegramChat
    from_user: TelegramUser | None = Field(default=None, alias="from")
    text: str | None = None


class TelegramCallbackQuery(BaseModel):
    """Telegram callback query payload."""

    id: str
    from_user: TelegramUser = Field(alias="from")
    message: TelegramMessage | None = None
    data: str | None = None


class TelegramUpdate(BaseModel):
    """Telegram update payload."""

    update_id: int
    message: TelegramMessage | None = None
    callback_query: TelegramCallbackQuery | None = None

    def sender_id(self) -> int | None:
        """Return the id of the user who triggered the update."""
        if self.callback_query:
            return self.callback_query.from_user.id
        if self.message and self.message.from_user:
            return self.message.from_user.id
        return None
