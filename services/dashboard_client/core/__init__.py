from .bridge import DashboardBridge, open_dashboard
from .reconcile import ActivityEntry, ReconciliationLoop
from .remote import RemoteSnapshot, RemoteStateClient, RemoteUnavailable

__all__ = [
    "ActivityEntry",
    "DashboardBridge",
    "ReconciliationLoop",
    "RemoteSnapshot",
    "RemoteStateClient",
    "RemoteUnavailable",
    "open_dashboard",
]
