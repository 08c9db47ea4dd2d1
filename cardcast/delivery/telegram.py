"""Telegram sink built on an aiogram ``Bot``.

Images go out as albums of at most ten photos; a lone image is sent as a
plain photo because Telegram rejects single-item media groups. Documents are
sent one by one and a failing document does not stop the rest.
"""

from __future__ import annotations

import typing as typ

from aiogram.exceptions import TelegramAPIError
from aiogram.types import BufferedInputFile, InputMediaPhoto

from cardcast.delivery.errors import DocumentSendError
from cardcast.logging import get_logger, log_error, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cardcast.models import FileSet, ImageSet, TelegramChat, TextData

logger = get_logger(__name__)

ALBUM_LIMIT = 10


@typ.runtime_checkable
class TelegramBot(typ.Protocol):
    """Subset of ``aiogram.Bot`` used by the sink."""

    async def send_message(
        self,
        chat_id: int,
        text: str,
        *,
        message_thread_id: int | None = None,
        parse_mode: str | None = None,
    ) -> object: ...

    async def send_photo(
        self,
        chat_id: int,
        photo: BufferedInputFile,
        *,
        message_thread_id: int | None = None,
    ) -> object: ...

    async def send_media_group(
        self,
        chat_id: int,
        media: list[InputMediaPhoto],
        *,
        message_thread_id: int | None = None,
    ) -> object: ...

    async def send_document(
        self,
        chat_id: int,
        document: BufferedInputFile,
        *,
        message_thread_id: int | None = None,
    ) -> object: ...


def _chunks[T](items: cabc.Sequence[T], size: int) -> cabc.Iterator[cabc.Sequence[T]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class TelegramSink:
    """Send rendered artifacts to Telegram chats and forum threads."""

    def __init__(self, bot: TelegramBot) -> None:
        """Wrap an aiogram bot (or a compatible fake)."""
        self._bot = bot

    async def send_text(self, chat: TelegramChat, message: TextData) -> None:
        """Send one message honouring its parse mode and the chat's thread."""
        await self._bot.send_message(
            chat.chat_id,
            message.body,
            message_thread_id=chat.thread_id,
            parse_mode=message.parse_mode or None,
        )
        log_info(logger, "Sent text message to chat %s", chat.chat_id)

    async def send_album(self, chat: TelegramChat, images: ImageSet) -> None:
        """Send images as albums of up to ``ALBUM_LIMIT`` photos."""
        for chunk in _chunks(list(images), ALBUM_LIMIT):
            files = [
                BufferedInputFile(item.content, filename=item.name) for item in chunk
            ]
            if len(files) == 1:
                await self._bot.send_photo(
                    chat.chat_id, files[0], message_thread_id=chat.thread_id
                )
                continue
            await self._bot.send_media_group(
                chat.chat_id,
                [InputMediaPhoto(media=file) for file in files],
                message_thread_id=chat.thread_id,
            )
        log_info(logger, "Sent %d image(s) to chat %s", len(images), chat.chat_id)

    async def send_documents(self, chat: TelegramChat, files: FileSet) -> None:
        """Send each file as a document.

        Raises
        ------
        DocumentSendError
            If any document failed; the others were still attempted.

        """
        errors: list[Exception] = []
        for item in files:
            try:
                await self._bot.send_document(
                    chat.chat_id,
                    BufferedInputFile(item.content, filename=item.name),
                    message_thread_id=chat.thread_id,
                )
            except TelegramAPIError as exc:
                log_error(
                    logger,
                    "Failed to send document %s to chat %s: %s",
                    item.name,
                    chat.chat_id,
                    exc,
                )
                errors.append(exc)
        if errors:
            raise DocumentSendError(errors)
        log_info(logger, "Sent %d document(s) to chat %s", len(files), chat.chat_id)
