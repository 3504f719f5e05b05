"""Slack event and interaction payloads consumed by the handlers."""

from __future__ import annotations

from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel

from grafana_unfurl.core.errors import ValidationError

M = TypeVar("M", bound=BaseModel)


class SharedLink(BaseModel):
    url: str
    domain: str | None = None


class LinkSharedEvent(BaseModel):
    type: str = "link_shared"
    channel: str
    user: str
    message_ts: str
    links: list[SharedLink]


class SelectedOption(BaseModel):
    value: str


class BlockAction(BaseModel):
    action_id: str
    block_id: str
    type: str | None = None
    selected_option: SelectedOption | None = None


class InteractionPayload(BaseModel):
    type: str
    response_url: str
    actions: list[BlockAction]


def validate_payload(model: type[M], data: Any, what: str) -> M:
    """Validate ``data`` against ``model``, raising ValidationError on mismatch."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            f"Unable to validate {what}",
            {"errors": "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors())},
        ) from exc
