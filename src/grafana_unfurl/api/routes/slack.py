"""
Slack Events API and interactivity endpoints.

Request signatures are verified upstream of this application. Slack expects
an answer within three seconds, so the actual work runs as a background task.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response, status

from grafana_unfurl.api.deps import get_slack_handlers
from grafana_unfurl.unfurl.handlers import SlackHandlers

router = APIRouter()
logger = structlog.get_logger()


@router.post("/events")
async def slack_events(
    body: dict[str, Any],
    background_tasks: BackgroundTasks,
    handlers: SlackHandlers = Depends(get_slack_handlers),  # noqa: B008
) -> Any:
    if body.get("type") == "url_verification":
        return {"challenge": body.get("challenge")}

    event = body.get("event") or {}
    if body.get("type") == "event_callback" and event.get("type") == "link_shared":
        background_tasks.add_task(handlers.handle_link_shared, event)
    else:
        logger.debug("slack_event_ignored", type=body.get("type"), event_type=event.get("type"))
    return Response(status_code=status.HTTP_200_OK)


@router.post("/actions")
async def slack_actions(
    request: Request,
    background_tasks: BackgroundTasks,
    handlers: SlackHandlers = Depends(get_slack_handlers),  # noqa: B008
) -> Response:
    form = await request.form()
    raw_payload = form.get("payload")
    if not isinstance(raw_payload, str):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing payload")
    try:
        payload = json.loads(raw_payload)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Payload is not valid JSON"
        ) from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payload must be an object")

    background_tasks.add_task(handlers.handle_action, payload)
    return Response(status_code=status.HTTP_200_OK)
