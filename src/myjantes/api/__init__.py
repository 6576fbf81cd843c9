"""REST client for the MyJantes backend."""

from .client import ApiClient
from .resources import ADMIN_RESOURCES, CrudResource, MyJantesApi, as_list

__all__ = [
    "ApiClient",
    "ADMIN_RESOURCES",
    "CrudResource",
    "MyJantesApi",
    "as_list",
]
