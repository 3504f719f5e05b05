"""Grafana link unfurler for Slack."""

__version__ = "0.1.0"
