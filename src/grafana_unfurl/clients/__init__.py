from grafana_unfurl.clients.slack import SlackClient

__all__ = ["SlackClient"]
