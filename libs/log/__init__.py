from .setup import setup_logging
from .tracing import new_id, now_iso, now_ms

__all__ = ["setup_logging", "new_id", "now_iso", "now_ms"]
