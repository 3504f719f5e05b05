from grafana_unfurl.unfurl.handlers import SlackHandlers
from grafana_unfurl.unfurl.resolver import PanelPrompt, PanelResolver, Resolution, ResolutionState
from grafana_unfurl.unfurl.selections import PendingSelection, SelectionStore
from grafana_unfurl.unfurl.service import UnfurlResult, UnfurlService

__all__ = [
    "PanelPrompt",
    "PanelResolver",
    "PendingSelection",
    "Resolution",
    "ResolutionState",
    "SelectionStore",
    "SlackHandlers",
    "UnfurlResult",
    "UnfurlService",
]
