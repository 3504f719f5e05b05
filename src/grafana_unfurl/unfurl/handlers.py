"""
Slack link_shared and interaction handling.

Every handler here runs detached from the HTTP request that delivered the
event, so errors are logged (and where possible reported back to the user)
instead of being raised.
"""

from __future__ import annotations

import asyncio
import html
from typing import Any

import structlog

from grafana_unfurl.clients.slack import SlackClient
from grafana_unfurl.core.errors import UnfurlError, ValidationError, format_error_message
from grafana_unfurl.logging import bind_context
from grafana_unfurl.metrics import PANEL_SELECTIONS
from grafana_unfurl.unfurl.messages import (
    PANEL_SELECT_ACTION,
    PANEL_SELECT_REMOVE_ACTION,
    block_token,
)
from grafana_unfurl.unfurl.payloads import (
    BlockAction,
    InteractionPayload,
    LinkSharedEvent,
    validate_payload,
)
from grafana_unfurl.unfurl.selections import PendingSelection, SelectionStore
from grafana_unfurl.unfurl.service import UnfurlService

logger = structlog.get_logger()

GENERATING_TEXT = "Generating the image..."


def _error_text(exc: Exception) -> str:
    if isinstance(exc, UnfurlError):
        return f"{type(exc).__name__}: {format_error_message(exc)}"
    return f"{type(exc).__name__}: {exc}"


def _single_action(payload: InteractionPayload, action_id: str) -> BlockAction:
    if len(payload.actions) != 1:
        raise ValidationError(f"Received {len(payload.actions)} actions in payload for {action_id}")
    return payload.actions[0]


class SlackHandlers:
    def __init__(
        self,
        service: UnfurlService,
        slack: SlackClient,
        selections: SelectionStore,
    ) -> None:
        self._service = service
        self._slack = slack
        self._selections = selections

    async def handle_link_shared(self, event: dict[str, Any]) -> None:
        """Unfurl every link of a link_shared event, one pipeline per link."""
        try:
            link_event = validate_payload(LinkSharedEvent, event, "link_shared event")
        except ValidationError as exc:
            logger.error("link_shared_invalid", error=format_error_message(exc))
            return

        logger.debug("link_shared_received", channel=link_event.channel, links=len(link_event.links))
        results = await asyncio.gather(
            *(self._unfurl_link(link_event, link.url) for link in link_event.links)
        )
        unfurls = {url: attachment for url, attachment in results if attachment is not None}
        if not unfurls:
            return

        try:
            await self._slack.unfurl(link_event.channel, link_event.message_ts, unfurls)
        except Exception as exc:
            logger.error("slack_unfurl_failed", error=str(exc), links=list(unfurls))

    async def _unfurl_link(
        self, event: LinkSharedEvent, encoded_url: str
    ) -> tuple[str, dict[str, Any] | None]:
        with bind_context(url=encoded_url, channel=event.channel):
            try:
                result = await self._service.unfurl(html.unescape(encoded_url))
                if result.prompt is not None:
                    selection = PendingSelection(
                        token=result.prompt.token,
                        encoded_url=encoded_url,
                        channel=event.channel,
                        message_ts=event.message_ts,
                    )
                    await self._selections.add(selection)
                    try:
                        await self._slack.post_ephemeral(
                            event.channel, event.user, attachments=[result.prompt.attachment]
                        )
                    except Exception:
                        await self._selections.discard(selection.token)
                        raise
                    logger.info("panel_prompt_posted", token=selection.token)
                return encoded_url, result.attachment
            except Exception as exc:
                logger.error("link_unfurl_failed", error=str(exc), error_type=type(exc).__name__)
                return encoded_url, None

    async def handle_action(self, payload: dict[str, Any]) -> None:
        """Dispatch an interaction payload to the matching action handler."""
        action_ids = {a.get("action_id") for a in payload.get("actions", []) if isinstance(a, dict)}
        if PANEL_SELECT_ACTION in action_ids:
            await self.handle_panel_select(payload)
        elif PANEL_SELECT_REMOVE_ACTION in action_ids:
            await self.handle_panel_select_remove(payload)
        else:
            logger.debug("interaction_ignored", actions=sorted(str(a) for a in action_ids))

    async def _report(self, response_url: str | None, exc: Exception) -> None:
        if not response_url:
            return
        try:
            await self._slack.respond(
                response_url,
                {
                    "replace_original": False,
                    "response_type": "ephemeral",
                    "text": _error_text(exc),
                },
            )
        except Exception as report_exc:
            logger.error("interaction_report_failed", error=str(report_exc))

    async def handle_panel_select(self, payload: dict[str, Any]) -> None:
        response_url = payload.get("response_url")
        selection: PendingSelection | None = None
        try:
            interaction = validate_payload(InteractionPayload, payload, "interaction payload")
            action = _single_action(interaction, PANEL_SELECT_ACTION)
            if action.selected_option is None:
                raise ValidationError(
                    f"Received unexpected action in payload for {PANEL_SELECT_ACTION}",
                    {"action_id": action.action_id},
                )
            try:
                panel_id = int(action.selected_option.value)
            except ValueError as exc:
                raise ValidationError(
                    f"Selected panel id is not numeric: {action.selected_option.value!r}"
                ) from exc

            selection = await self._selections.take(block_token(action.block_id))
            log = logger.bind(token=selection.token, panel_id=panel_id)
            log.debug("panel_selected")

            await self._slack.respond(
                interaction.response_url,
                {"replace_original": True, "response_type": "ephemeral", "text": GENERATING_TEXT},
            )
            raw_url = html.unescape(selection.encoded_url)
            result = await self._service.build_unfurl(raw_url, panel_id)
            if result.attachment is None:
                raise UnfurlError(
                    f"Unable to unfurl URL for selected panel {panel_id} on URL {raw_url}"
                )

            await asyncio.gather(
                self._slack.respond(
                    interaction.response_url,
                    {"delete_original": True, "response_type": "ephemeral"},
                ),
                self._slack.unfurl(
                    selection.channel,
                    selection.message_ts,
                    {selection.encoded_url: result.attachment},
                ),
            )
            log.info("panel_selection_unfurled")
            PANEL_SELECTIONS.labels(outcome="selected").inc()
        except Exception as exc:
            logger.error("panel_select_failed", error=str(exc), error_type=type(exc).__name__)
            PANEL_SELECTIONS.labels(outcome="failed").inc()
            if selection is not None:
                await self._selections.restore(selection)
            await self._report(response_url, exc)

    async def handle_panel_select_remove(self, payload: dict[str, Any]) -> None:
        response_url = payload.get("response_url")
        try:
            interaction = validate_payload(InteractionPayload, payload, "interaction payload")
            action = _single_action(interaction, PANEL_SELECT_REMOVE_ACTION)
            await self._slack.respond(
                interaction.response_url,
                {"delete_original": True, "response_type": "ephemeral"},
            )
            await self._selections.discard(block_token(action.block_id))
            logger.info("panel_prompt_removed")
            PANEL_SELECTIONS.labels(outcome="removed").inc()
        except Exception as exc:
            logger.error("panel_select_remove_failed", error=str(exc), error_type=type(exc).__name__)
            await self._report(response_url, exc)
