"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import BackgroundTasks, FastAPI, Request

from dream_bot.api.telegram_models import TelegramCallbackQuery, TelegramUpdate
from dream_bot.app_logging import configure_logging
from dream_bot.config import parse_allowed_user_ids
from dream_bot.containers import AppContainer
from dream_bot.services.commands import USAGE
from dream_bot.services.dream import ratios_summary
from dream_bot.telegram_commands import command_name, telegram_commands


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)
    allowed_user_ids = parse_allowed_user_ids(
        container.settings.telegram_allowed_user_ids
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await app.state.container.telegram_client.set_my_commands(
                telegram_commands()
            )
        except Exception:
            logger.exception("Failed to sync Telegram bot commands")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health(request: Request) -> dict[str, object]:
        """Health check with the number of live render jobs."""
        state_container: AppContainer = request.app.state.container
        return {"status": "ok", "queue": len(state_container.queue)}

    @app.post("/telegram/webhook")
    async def telegram_webhook(
        update: TelegramUpdate, request: Request, background_tasks: BackgroundTasks
    ) -> dict[str, str]:
        """Handle Telegram webhook updates; renders run after the response."""
        state_container: AppContainer = request.app.state.container
        telegram_client = state_container.telegram_client
        handler = state_container.dream_handler
        user_id = update.sender_id()
        if user_id is not None and not _is_user_allowed(user_id, allowed_user_ids):
            if update.callback_query:
                await telegram_client.answer_callback_query(
                    update.callback_query.id, text="Not authorized."
                )
            elif update.message:
                await telegram_client.send_message(
                    chat_id=update.message.chat.id,
                    text="You need to be verified first!",
                )
            return {"status": "ok"}

        if update.callback_query:
            callback = update.callback_query
            await telegram_client.answer_callback_query(callback.id)
            if callback.message and callback.data:
                background_tasks.add_task(
                    handler.handle_callback,
                    chat_id=callback.message.chat.id,
                    message_id=callback.message.message_id,
                    data=callback.data,
                    caller_id=_callback_caller_id(callback),
                    mention=callback.from_user.mention,
                )
            return {"status": "ok"}

        message = update.message
        if message is None or not message.text:
            return {"status": "ok"}
        command = command_name(message.text)
        if command == "dream":
            mention = message.from_user.mention if message.from_user else "You:"
            background_tasks.add_task(
                handler.handle_dream,
                chat_id=message.chat.id,
                text=message.text,
                caller_id=f"m:{message.chat.id}:{message.message_id}",
                mention=mention,
            )
        elif command == "ratios":
            await telegram_client.send_message(
                chat_id=message.chat.id, text=ratios_summary()
            )
        elif command == "help":
            await telegram_client.send_message(chat_id=message.chat.id, text=USAGE)
        return {"status": "ok"}

    return app


def _is_user_allowed(user_id: int, allowed_user_ids: set[int] | None) -> bool:
    if allowed_user_ids is None:
        return True
    return user_id in allowed_user_ids


def _callback_caller_id(callback: TelegramCallbackQuery) -> str:
    return f"c:{callback.id}"
