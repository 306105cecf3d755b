"""Handles text messages sent to the LINE bot."""
from sqlmodel import Session

from medreminder.providers.line_messages import build_help_message, build_status_message, build_text_message
from medreminder.providers.line_provider import LineMessagingProvider
from medreminder.services.link_service import LinkService
from medreminder.utils.logger import get_logger

logger = get_logger(__name__)

UNLINK_COMMAND = "連携解除"
HELP_COMMAND = "ヘルプ"
DEFAULT_REPLY = "メッセージありがとうございます。現在、個別の返信は行っておりません。"


async def handle_text_message(
    session: Session,
    provider: LineMessagingProvider,
    line_user_id: str,
    text: str,
    reply_token: str,
) -> str:
    """
    Answer one text message and return the name of the action taken.

    A message matching a user's linking code links the accounts; otherwise
    the bot answers the unlink and help commands, or a default reply.
    """
    links = LinkService(session)
    text = (text or "").strip()
    logger.info("Received LINE message", line_user_id=line_user_id)

    if links.link_with_code(line_user_id, text) is not None:
        await provider.reply(
            reply_token,
            [build_status_message("アカウント連携完了", "アカウントの連携が完了しました！")],
        )
        return "linked"

    connection = links.find_by_line_user(line_user_id)

    if text == HELP_COMMAND:
        await provider.reply(reply_token, [build_help_message(linked=connection is not None)])
        return "help"

    if connection is None:
        await provider.reply(
            reply_token,
            [
                build_status_message(
                    "アカウント未連携",
                    "アカウントが連携されていません。アプリの設定画面から連携コードをコピーし、トーク画面に送信してください。",
                    success=False,
                )
            ],
        )
        return "not_linked"

    if text == UNLINK_COMMAND:
        links.unlink(line_user_id)
        await provider.reply(reply_token, [build_status_message("連携解除完了", "アカウントの連携を解除しました。")])
        return "unlinked"

    await provider.reply(reply_token, [build_text_message(DEFAULT_REPLY)])
    return "default"
