import asyncio
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from app.modules.realtime.service import RealtimeService
from app.core import realtime
from app.core.dependencies import check_group_member, get_ws_supabase
from app.core.session import SessionContext
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

WATCHABLE_TABLES = {"posts", "groups", "group_members", "comments", "post_likes", "folders", realtime.AUTH_CHANNEL}


def authorize_channel(supabase: Client, session: SessionContext, table: str, filter_expr: Optional[str]) -> Optional[str]:
    """Validate a requested channel and return the filter to subscribe with"""
    if table not in WATCHABLE_TABLES:
        raise ValueError(f"Unknown table '{table}'")
    parsed = realtime.parse_filter(filter_expr)
    if table == realtime.AUTH_CHANNEL:
        # Session events only ever go to the user they concern
        return f"user_id=eq.{session.user_id}"
    if parsed and parsed[0] == "group_id":
        check_group_member(parsed[1], session, supabase)
    return filter_expr


def open_channel(auth_client: Client, supabase: Client, token: str, table: str, filter_expr: Optional[str]):
    user = AuthService(auth_client).get_current_user(token)
    session = SessionContext.load(supabase, user, token)
    return session, authorize_channel(supabase, session, table, filter_expr)


@router.websocket("/realtime")
async def realtime_endpoint(
    websocket: WebSocket,
    auth_client: Client = Depends(get_supabase),
    supabase: Client = Depends(get_ws_supabase)
):
    """
    Stream change events for one channel.

    Connection URL: /api/v1/realtime?token=<jwt>&table=posts&filter=group_id=eq.<id>
    Only events the caller could read through the REST routes are sent.
    """
    await websocket.accept()
    token = websocket.query_params.get("token")
    table = websocket.query_params.get("table")
    if not token or not table:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="token and table are required")
        return

    try:
        session, filter_expr = await run_in_threadpool(
            open_channel, auth_client, supabase, token, table, websocket.query_params.get("filter")
        )
    except HTTPException as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(e.detail))
        return
    except ValueError as e:
        await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA, reason=str(e))
        return

    guard = RealtimeService(supabase, session)
    feed = realtime.get_change_feed()
    subscription = feed.subscribe(table, filter_expr)
    logger.info(f"User {session.user_id} watching {table} ({filter_expr or '*'})")

    async def forward():
        while True:
            event = await subscription.get()
            if not await run_in_threadpool(guard.can_receive, event):
                continue
            await websocket.send_json(event.model_dump(mode="json"))

    await websocket.send_json({"type": "subscribed", "table": table, "filter": filter_expr})
    sender = asyncio.create_task(forward())
    try:
        # Client messages are ignored; receiving is how a disconnect is noticed
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"User {session.user_id} stopped watching {table}")
    finally:
        sender.cancel()
        feed.unsubscribe(subscription)
