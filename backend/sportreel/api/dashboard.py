import asyncio
import logging
from typing import Callable, List
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session
from sportreel.api.deps import get_current_user
from sportreel.core.database import get_db, get_session_factory
from sportreel.core.errors import AuthenticationError
from sportreel.models.user import User
from sportreel.schemas.video import VideoResponse
from sportreel.services.auth import get_session_user
from sportreel.services.dashboard import DashboardSubscription
from sportreel.services.videos import list_user_videos

logger = logging.getLogger(__name__)
router = APIRouter()


async def stop_sender(sender: asyncio.Task) -> None:
    """Cancel the push task and collect its outcome, including a failed send to a closed socket."""
    sender.cancel()
    try:
        await sender
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.info(f"Dashboard push stopped after send failure: {e}")


@router.get("/dashboard/videos", response_model=List[VideoResponse])
def dashboard_videos(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Current user's videos, newest first."""
    return list_user_videos(db, current_user.id)


@router.websocket("/dashboard/ws")
async def dashboard_socket(
    websocket: WebSocket,
    token: str = Query(...),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Push the current user's video list on connect and after every change to it."""
    db = session_factory()
    try:
        user_id = get_session_user(db, token).id
    except AuthenticationError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    finally:
        db.close()

    await websocket.accept()
    loop = asyncio.get_running_loop()
    updates: asyncio.Queue = asyncio.Queue()

    def on_update(videos: List[VideoResponse]) -> None:
        # Called from whichever thread committed the change
        loop.call_soon_threadsafe(updates.put_nowait, videos)

    def on_error(error: Exception) -> None:
        loop.call_soon_threadsafe(updates.put_nowait, error)

    subscription = DashboardSubscription(user_id, on_update, session_factory, on_error=on_error)

    async def pump() -> None:
        while True:
            item = await updates.get()
            if isinstance(item, Exception):
                await websocket.send_json({"error": "Failed to load videos"})
            else:
                await websocket.send_json({"videos": [video.model_dump(mode="json") for video in item]})

    sender = asyncio.create_task(pump())
    try:
        await asyncio.to_thread(subscription.start)
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Dashboard socket closed for user {user_id}")
    finally:
        await asyncio.to_thread(subscription.stop)
        await stop_sender(sender)
