from grafana_unfurl.grafana.client import GrafanaDashboard
from grafana_unfurl.unfurl.messages import (
    MAX_OPTION_TEXT,
    MAX_OPTIONS,
    PANEL_SELECT_REMOVE_ACTION,
    block_token,
    create_panel_attachment,
    create_panel_selector,
)


def test_attachment_falls_back_to_unknown_titles():
    attachment = create_panel_attachment("https://s3.example/x.png")

    (block,) = attachment["blocks"]
    assert block["type"] == "image"
    assert block["image_url"] == "https://s3.example/x.png"
    assert block["alt_text"] == "unknown panel on unknown dashboard"
    assert block["title"] == {"type": "plain_text", "text": "unknown panel"}


def test_attachment_uses_titles():
    attachment = create_panel_attachment("https://s3.example/x.png", "Overview", "Latency")

    assert attachment["blocks"][0]["alt_text"] == "Latency on Overview"


def test_selector_respects_slack_limits():
    dashboard = GrafanaDashboard.model_validate(
        {
            "title": "Huge",
            "panels": [{"id": i, "title": "t" * 200 if i == 0 else ""} for i in range(150)],
        }
    )

    prompt = create_panel_selector(dashboard, "tok")

    options = prompt["blocks"][0]["accessory"]["options"]
    assert len(options) == MAX_OPTIONS
    assert len(options[0]["text"]["text"]) == MAX_OPTION_TEXT
    assert options[1]["text"]["text"] == "Panel 1"
    assert prompt["blocks"][1]["block_id"] == f"{PANEL_SELECT_REMOVE_ACTION}:tok"


def test_block_token_keeps_everything_after_first_colon():
    assert block_token("panel_select:abc+/=") == "abc+/="
    assert block_token("panel_select:a:b") == "a:b"
    assert block_token("panel_select") == ""
