"""Prometheus counters for the unfurl pipeline, registered on the default registry."""

from __future__ import annotations

from prometheus_client import Counter

UNFURLS = Counter(
    "grafana_unfurl_unfurls_total",
    "Shared Grafana links processed, by outcome",
    labelnames=("outcome",),
)

PANEL_SELECTIONS = Counter(
    "grafana_unfurl_panel_selections_total",
    "Answers to panel selection prompts, by outcome",
    labelnames=("outcome",),
)

IMAGES_CACHED = Counter(
    "grafana_unfurl_images_cached_total",
    "Panel images rendered and uploaded to storage",
)

RENDER_FAILURES = Counter(
    "grafana_unfurl_render_failures_total",
    "Failed Grafana render requests",
    labelnames=("kind",),
)

STORAGE_FAILURES = Counter(
    "grafana_unfurl_storage_failures_total",
    "Failed object storage operations",
    labelnames=("operation", "kind"),
)

CLEANUP_DELETED = Counter(
    "grafana_unfurl_cleanup_deleted_total",
    "Cached images removed by retention cleanup",
)

CLEANUP_FAILURES = Counter(
    "grafana_unfurl_cleanup_failures_total",
    "Cached images retention cleanup failed to delete",
)
