"""LINE webhook endpoint."""
import json

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session

from medreminder.db.config import get_session
from medreminder.providers.base_provider import ProviderError
from medreminder.providers.line_provider import verify_signature
from medreminder.routers.dependencies import get_scheduler
from medreminder.scheduler import ReminderScheduler
from medreminder.services.line_handler import handle_text_message
from medreminder.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["LINE"])


@router.post("/line/webhook")
async def line_webhook(
    request: Request,
    session: Session = Depends(get_session),
    scheduler: ReminderScheduler = Depends(get_scheduler),
):
    """Verify the LINE signature and answer text messages."""
    body = await request.body()
    signature = request.headers.get("x-line-signature", "")
    if not verify_signature(body, scheduler.settings.line_channel_secret, signature):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    # Serverless deployments may never run the startup hook; arming here is
    # a no-op once the scheduler is running
    try:
        await scheduler.start()
    except ProviderError as e:
        logger.critical("Reminder scheduler could not be started", error_class=e.__class__.__name__, error=e.message)

    try:
        payload = json.loads(body or b"{}")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")
    events = payload.get("events", []) if isinstance(payload, dict) else None
    if not isinstance(events, list):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Body must be an object with an events list")

    handled = []
    try:
        for event in events:
            if not isinstance(event, dict):
                continue
            message = event.get("message") or {}
            line_user_id = (event.get("source") or {}).get("userId")
            if event.get("type") == "message" and message.get("type") == "text" and line_user_id:
                handled.append(
                    await handle_text_message(
                        session, scheduler.provider, line_user_id, message.get("text", ""), event.get("replyToken", "")
                    )
                )
    except ProviderError as e:
        logger.error("LINE webhook reply failed", error_class=e.__class__.__name__, error=e.message)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal Server Error")

    return {"status": "ok", "handled": handled}
