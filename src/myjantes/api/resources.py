"""Typed REST functions grouped by backend resource."""

from __future__ import annotations

import mimetypes
import os
from typing import Any, Dict, List, Optional

from .client import ApiClient

Record = Dict[str, Any]


def as_list(payload: Any) -> List[Record]:
    """Coerce a list endpoint response to a list of records.

    The backend answers either with a bare array or with an envelope
    (`items`, `data` or `results`); anything else counts as empty.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("items", "data", "results"):
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


class CrudResource:
    def __init__(self, client: ApiClient, path: str) -> None:
        self.client = client
        self.path = path.rstrip("/")

    def list(self, params: Optional[Dict[str, Any]] = None) -> List[Record]:
        return as_list(self.client.request("GET", self.path, params=params))

    def get(self, item_id: Any) -> Record:
        return self.client.get(f"{self.path}/{item_id}")

    def create(self, data: Record) -> Any:
        return self.client.post(self.path, data)

    def update(self, item_id: Any, data: Record) -> Any:
        return self.client.patch(f"{self.path}/{item_id}", data)

    def delete(self, item_id: Any) -> Any:
        return self.client.delete(f"{self.path}/{item_id}")


class AuthApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def login(self, email: str, password: str) -> Any:
        return self.client.post("/api/auth/login", {"email": email, "password": password})

    def register(self, data: Record) -> Any:
        return self.client.post("/api/auth/register", data)

    def logout(self) -> Any:
        return self.client.post("/api/auth/logout")

    def get_user(self) -> Record:
        return self.client.get("/api/auth/user")

    def update_user(self, data: Record) -> Any:
        return self.client.patch("/api/auth/user", data)

    def forgot_password(self, email: str) -> Any:
        return self.client.post("/api/auth/forgot-password", {"email": email})

    def reset_password(self, email: str, token: str, new_password: str) -> Any:
        return self.client.post(
            "/api/auth/reset-password",
            {"email": email, "token": token, "newPassword": new_password},
        )

    def change_password(self, current_password: str, new_password: str) -> Any:
        return self.client.post(
            "/api/auth/change-password",
            {"currentPassword": current_password, "newPassword": new_password},
        )

    def get_notification_preferences(self) -> Record:
        return self.client.get("/api/auth/notification-preferences")

    def update_notification_preferences(self, prefs: Record) -> Any:
        return self.client.put("/api/auth/notification-preferences", prefs)

    def delete_account(self) -> Any:
        return self.client.delete("/api/users/me")


class QuotesApi(CrudResource):
    def __init__(self, client: ApiClient) -> None:
        super().__init__(client, "/api/quotes")

    def accept(self, view_token: str) -> Any:
        return self.client.post(f"/api/public/quotes/{view_token}/accept")

    def reject(self, view_token: str) -> Any:
        return self.client.post(f"/api/public/quotes/{view_token}/reject")


class NotificationsApi(CrudResource):
    def __init__(self, client: ApiClient) -> None:
        super().__init__(client, "/api/notifications")

    def mark_read(self, notification_id: Any) -> Any:
        return self.client.patch(f"{self.path}/{notification_id}/read")


class ChatApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def conversations(self) -> List[Record]:
        return as_list(self.client.get("/api/chat/conversations"))

    def messages(self, conversation_id: Any) -> List[Record]:
        return as_list(self.client.get(f"/api/chat/conversations/{conversation_id}/messages"))

    def send_message(self, conversation_id: Any, content: str) -> Any:
        return self.client.post(
            f"/api/chat/conversations/{conversation_id}/messages",
            {"content": content},
        )


class AssistantApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def ask(self, message: str) -> Any:
        return self.client.post("/api/ai/assistant", {"message": message, "mode": "chat"})


class OcrApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def scan(self, file_path: str, document_type: str) -> Any:
        mime, _ = mimetypes.guess_type(file_path)
        with open(file_path, "rb") as fh:
            files = {"media": (os.path.basename(file_path), fh, mime or "image/jpeg")}
            return self.client.request(
                "POST",
                "/api/ocr/scan",
                data={"documentType": document_type},
                files=files,
            )


class AdminInvoicesApi(CrudResource):
    def __init__(self, client: ApiClient) -> None:
        super().__init__(client, "/api/admin/invoices")

    def create_direct(self, data: Record) -> Any:
        return self.client.post(f"{self.path}/direct", data)


class AdminExpensesApi(CrudResource):
    def __init__(self, client: ApiClient) -> None:
        super().__init__(client, "/api/admin/expenses")

    def categories(self) -> List[Any]:
        return as_list(self.client.get(f"{self.path}/categories"))


class AdminPaymentsApi(CrudResource):
    def __init__(self, client: ApiClient) -> None:
        super().__init__(client, "/api/admin/payments")

    def generate_link(self, data: Record) -> Any:
        return self.client.post(f"{self.path}/generate-link", data)


class AdminEngagementsApi(CrudResource):
    def __init__(self, client: ApiClient) -> None:
        super().__init__(client, "/api/admin/engagements")

    def summary(self) -> Record:
        return self.client.get(f"{self.path}/summary") or {}


class AdminSettingsApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def get(self) -> Record:
        return self.client.get("/api/admin/settings") or {}

    def update(self, data: Record) -> Any:
        return self.client.put("/api/admin/settings", data)

    def get_garage_legal(self) -> Record:
        return self.client.get("/api/admin/settings/garage-legal") or {}

    def update_garage_legal(self, data: Record) -> Any:
        return self.client.put("/api/admin/settings/garage-legal", data)


class AccountingApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def _report(self, name: str, period: Optional[str]) -> Any:
        return self.client.get(f"/api/admin/accounting/{name}", period=period)

    def profit_loss(self, period: Optional[str] = None) -> Any:
        return self._report("profit-loss", period)

    def tva_report(self, period: Optional[str] = None) -> Any:
        return self._report("tva-report", period)

    def cash_flow(self, period: Optional[str] = None) -> Any:
        return self._report("cash-flow", period)

    def entries(self, period: Optional[str] = None) -> List[Record]:
        return as_list(self._report("entries", period))

    def export_fec(self, period: Optional[str] = None) -> Any:
        return self._report("export-fec", period)


class AdminExportApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def export_data(self, fmt: str = "json") -> Any:
        return self.client.post("/api/admin/export/data", {"format": fmt})

    def export_database(self) -> Any:
        return self.client.post("/api/admin/export/database")

    def audit_logs(self) -> List[Record]:
        return as_list(self.client.get("/api/admin/audit-logs"))


ADMIN_RESOURCES = (
    "clients",
    "quotes",
    "invoices",
    "reservations",
    "services",
    "repair-orders",
    "expenses",
    "payments",
    "reviews",
    "users",
    "engagements",
    "credit-notes",
    "delivery-notes",
)


class MyJantesApi:
    """Every resource group of the backend, bound to one ApiClient."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client
        self.auth = AuthApi(client)
        self.quotes = QuotesApi(client)
        self.invoices = CrudResource(client, "/api/invoices")
        self.reservations = CrudResource(client, "/api/reservations")
        self.services = CrudResource(client, "/api/services")
        self.notifications = NotificationsApi(client)
        self.chat = ChatApi(client)
        self.assistant = AssistantApi(client)
        self.ocr = OcrApi(client)
        self.settings = AdminSettingsApi(client)
        self.accounting = AccountingApi(client)
        self.export = AdminExportApi(client)
        self.garages = CrudResource(client, "/api/superadmin/garages")

        self.admin: Dict[str, CrudResource] = {
            name: CrudResource(client, f"/api/admin/{name}") for name in ADMIN_RESOURCES
        }
        self.admin["invoices"] = AdminInvoicesApi(client)
        self.admin["expenses"] = AdminExpensesApi(client)
        self.admin["payments"] = AdminPaymentsApi(client)
        self.admin["engagements"] = AdminEngagementsApi(client)
