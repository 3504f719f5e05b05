from __future__ import annotations

from fastapi import Request

from grafana_unfurl.storage.sweeper import RetentionSweeper
from grafana_unfurl.unfurl.handlers import SlackHandlers
from grafana_unfurl.unfurl.service import UnfurlService


def get_unfurl_service(request: Request) -> UnfurlService:
    return request.app.state.unfurl_service


def get_slack_handlers(request: Request) -> SlackHandlers:
    return request.app.state.slack_handlers


def get_sweeper(request: Request) -> RetentionSweeper:
    return request.app.state.sweeper
