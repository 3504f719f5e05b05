from grafana_unfurl.storage.s3 import ImageCache, StoredObject
from grafana_unfurl.storage.sweeper import RetentionSweeper

__all__ = ["ImageCache", "RetentionSweeper", "StoredObject"]
