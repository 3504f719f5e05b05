"""Slack Block Kit payloads for unfurls and panel selection prompts."""

from __future__ import annotations

from typing import Any

from grafana_unfurl.grafana.client import GrafanaDashboard

UNKNOWN_DASHBOARD = "unknown dashboard"
UNKNOWN_PANEL = "unknown panel"

PANEL_SELECT_ACTION = "panel_select"
PANEL_SELECT_REMOVE_ACTION = "panel_select_remove"

# Slack limits for static_select menus
MAX_OPTIONS = 100
MAX_OPTION_TEXT = 75


def create_panel_attachment(
    image_url: str,
    dashboard_title: str | None = None,
    panel_title: str | None = None,
) -> dict[str, Any]:
    dashboard_title = dashboard_title or UNKNOWN_DASHBOARD
    panel_title = panel_title or UNKNOWN_PANEL
    return {
        "blocks": [
            {
                "type": "image",
                "alt_text": f"{panel_title} on {dashboard_title}",
                "image_url": image_url,
                "title": {"type": "plain_text", "text": panel_title},
            }
        ]
    }


def _option_text(text: str) -> str:
    if len(text) <= MAX_OPTION_TEXT:
        return text
    return text[: MAX_OPTION_TEXT - 1] + "…"


def block_token(block_id: str) -> str:
    """Extract the selection token from a prompt block id."""
    return block_id.split(":", 1)[1] if ":" in block_id else ""


def create_panel_selector(dashboard: GrafanaDashboard, token: str) -> dict[str, Any]:
    options = [
        {
            "text": {"type": "plain_text", "text": _option_text(panel.title or f"Panel {panel.id}")},
            "value": str(panel.id),
        }
        for panel in dashboard.renderable_panels()[:MAX_OPTIONS]
    ]
    return {
        "blocks": [
            {
                "type": "section",
                "block_id": f"{PANEL_SELECT_ACTION}:{token}",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        f'The dashboard "{dashboard.title}" has multiple panels, please select '
                        "which one you would like to show as a preview"
                    ),
                },
                "accessory": {
                    "type": "static_select",
                    "action_id": PANEL_SELECT_ACTION,
                    "placeholder": {"type": "plain_text", "text": "Select a panel"},
                    "options": options,
                },
            },
            {
                "type": "actions",
                "block_id": f"{PANEL_SELECT_REMOVE_ACTION}:{token}",
                "elements": [
                    {
                        "type": "button",
                        "action_id": PANEL_SELECT_REMOVE_ACTION,
                        "text": {"type": "plain_text", "text": ":x: Remove", "emoji": True},
                    }
                ],
            },
        ]
    }
