"""Session, caching, storage and the flows built on the REST client."""

from .account import AccountService
from .cache import QueryCache
from .customer import CustomerService, Dashboard, DashboardSummary
from .notifications import NotificationPoller, category_label
from .operations import BackOffice, run_mutation
from .session import AuthSession
from .store import LocalStore

__all__ = [
    "AccountService",
    "AuthSession",
    "BackOffice",
    "CustomerService",
    "Dashboard",
    "DashboardSummary",
    "LocalStore",
    "NotificationPoller",
    "QueryCache",
    "category_label",
    "run_mutation",
]
