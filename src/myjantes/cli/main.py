from __future__ import annotations

import argparse
import dataclasses
import getpass
import json
import sqlite3
import sys
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from ..api import ApiClient, MyJantesApi
from ..config import Settings, load_settings
from ..domain.accounting import PERIOD_LABELS, PERIODS
from ..domain.aggregates import badge_label, unread_count
from ..domain.documents import notification_route
from ..domain.normalize import format_currency
from ..errors import MyJantesError, ValidationError
from ..logging import get_logger, set_level
from ..services import alerts
from ..services.account import AccountService
from ..services.alerts import Alert
from ..services.cache import QueryCache
from ..services.customer import DOCUMENT_TYPES, CustomerService, Dashboard
from ..services.notifications import NotificationPoller, category_label
from ..services.operations import ACCOUNTING_REPORTS, RESOURCES, BackOffice
from ..services.session import AuthSession
from ..services.store import LocalStore

LOG = get_logger("cli-main")

GENERIC_ERROR = "Une erreur est survenue. Veuillez réessayer."
_TRUE = ("1", "true", "yes", "on", "oui")
_FALSE = ("0", "false", "no", "off", "non")


@dataclass
class CliContext:
    settings: Settings
    api: MyJantesApi
    store: LocalStore
    cache: QueryCache
    session: AuthSession

    @classmethod
    def from_settings(cls, settings: Settings) -> "CliContext":
        client = ApiClient(settings.api_url, timeout=settings.timeout, verify_tls=settings.verify_tls)
        api = MyJantesApi(client)
        try:
            store = LocalStore(settings.store_path)
        except (OSError, sqlite3.Error) as e:
            raise MyJantesError(
                f"Impossible d'ouvrir le stockage local ({settings.store_path}).",
                title="Stockage local inaccessible",
            ) from e
        return cls(
            settings=settings,
            api=api,
            store=store,
            cache=QueryCache(),
            session=AuthSession(api, store),
        )

    def require_login(self) -> Dict[str, Any]:
        if self.session.user is None and not self.session.restore():
            raise MyJantesError(
                "Vous n'êtes pas connecté. Lancez 'myjantes login'.",
                title="Session expirée",
            )
        return self.session.user or {}

    def back_office(self) -> BackOffice:
        self.require_login()
        user = self.session.require_admin()
        return BackOffice(self.api, self.cache, current_user_id=user.get("id"))

    def customer(self) -> CustomerService:
        self.require_login()
        return CustomerService(self.api, self.cache)

    def account(self) -> AccountService:
        return AccountService(self.api, self.store, self.session)


# ---------- output helpers ----------
def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return str(value)


def _emit(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=_json_default))


def _printed(payload: Any) -> int:
    _emit(payload)
    return 0


def _show_alert(alert: Alert) -> int:
    stream = sys.stderr if alert.type == "error" else sys.stdout
    print(alerts.render(alert), file=stream)
    return 1 if alert.type == "error" else 0


def _mutation(outcome: Any, *, echo: bool = False) -> int:
    result, alert = outcome
    code = _show_alert(alert)
    if code == 0 and echo and result is not None:
        _emit(result)
    return code


def _parse_json(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ValidationError(f"JSON invalide : {e}") from None
    if not isinstance(data, dict):
        raise ValidationError("Les données doivent être un objet JSON.")
    return data


def _parse_bool(raw: str) -> bool:
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValidationError(f"Valeur booléenne invalide : {raw!r}")


def _parse_assignments(pairs: Optional[Sequence[str]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValidationError(f"Format attendu clé=valeur : {pair!r}")
        key, value = pair.split("=", 1)
        out[key.strip()] = value
    return out


def _confirm(question: str) -> bool:
    try:
        answer = input(f"{question} [o/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("o", "oui", "y", "yes")


# ---------- session ----------
def _add_session_cli(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    login = subparsers.add_parser("login", help="Sign in and keep the session cookie locally.")
    login.add_argument("--email", required=True)
    login.add_argument("--password", help="Prompted when omitted")

    def _login(ns: argparse.Namespace) -> int:
        password = ns.password if ns.password is not None else getpass.getpass("Mot de passe : ")
        user = ns.ctx.session.login(ns.email, password)
        _show_alert(alerts.success(f"Connecté en tant que {user.get('email') or user.get('id')}."))
        return 0

    login.set_defaults(handler=_login)

    logout = subparsers.add_parser("logout", help="Sign out and forget the stored session.")

    def _logout(ns: argparse.Namespace) -> int:
        ns.ctx.session.restore()
        ns.ctx.session.logout()
        return _show_alert(alerts.info("Vous êtes déconnecté."))

    logout.set_defaults(handler=_logout)

    whoami = subparsers.add_parser("whoami", help="Show the signed-in user.")
    whoami.set_defaults(handler=lambda ns: _printed(ns.ctx.require_login()))

    bio = subparsers.add_parser("biometric", help="Enable, disable or use the biometric unlock.")
    bio.add_argument("action", choices=["enable", "disable", "login"])

    def _biometric(ns: argparse.Namespace) -> int:
        account = ns.ctx.account()
        if ns.action == "enable":
            return _show_alert(account.set_biometric(True))
        if ns.action == "disable":
            return _show_alert(account.set_biometric(False))
        if ns.ctx.session.biometric_login(_confirm):
            _emit(ns.ctx.session.user)
            return 0
        return _show_alert(alerts.warning("Connexion biométrique indisponible. Connectez-vous avec votre mot de passe."))

    bio.set_defaults(handler=_biometric)


# ---------- account ----------
def _add_account_cli(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    pw = subparsers.add_parser("password", help="Change or reset a password.")
    pw_sub = pw.add_subparsers(dest="password_cmd", required=True)

    change = pw_sub.add_parser("change", help="Change the password of the signed-in user")
    change.add_argument("--current")
    change.add_argument("--new")
    change.add_argument("--confirm")

    def _change(ns: argparse.Namespace) -> int:
        ns.ctx.require_login()
        current = ns.current if ns.current is not None else getpass.getpass("Mot de passe actuel : ")
        new = ns.new if ns.new is not None else getpass.getpass("Nouveau mot de passe : ")
        confirm = ns.confirm if ns.confirm is not None else getpass.getpass("Confirmer : ")
        return _mutation(ns.ctx.account().change_password(current, new, confirm))

    change.set_defaults(handler=_change)

    forgot = pw_sub.add_parser("forgot", help="Ask for a reset code by email")
    forgot.add_argument("--email", required=True)
    forgot.set_defaults(handler=lambda ns: _show_alert(ns.ctx.account().send_reset_code(ns.email)))

    reset = pw_sub.add_parser("reset", help="Set a new password with the emailed code")
    reset.add_argument("--email", required=True)
    reset.add_argument("--code", required=True)
    reset.add_argument("--new")
    reset.add_argument("--confirm")

    def _reset(ns: argparse.Namespace) -> int:
        account = ns.ctx.account()
        code = account.verify_reset_code(ns.code)
        new = ns.new if ns.new is not None else getpass.getpass("Nouveau mot de passe : ")
        confirm = ns.confirm if ns.confirm is not None else getpass.getpass("Confirmer : ")
        return _mutation(account.reset_password(ns.email, code, new, confirm))

    reset.set_defaults(handler=_reset)

    profile = subparsers.add_parser("profile", help="Show or edit the profile.")
    profile_sub = profile.add_subparsers(dest="profile_cmd", required=True)
    profile_sub.add_parser("show").set_defaults(handler=lambda ns: _printed(ns.ctx.require_login()))
    upd = profile_sub.add_parser("update", help="Update fields, e.g. --set firstName=Marie --set city=")
    upd.add_argument("--set", action="append", dest="assignments", required=True)

    def _profile_update(ns: argparse.Namespace) -> int:
        ns.ctx.require_login()
        return _mutation(ns.ctx.account().update_profile(_parse_assignments(ns.assignments)))

    upd.set_defaults(handler=_profile_update)

    prefs = profile_sub.add_parser("notifications", help="Show or set push/email/sms preferences")
    prefs.add_argument("--set", action="append", dest="assignments", help="e.g. --set sms=on")

    def _prefs(ns: argparse.Namespace) -> int:
        ns.ctx.require_login()
        account = ns.ctx.account()
        changes = _parse_assignments(ns.assignments)
        if not changes:
            _emit(account.notification_preferences())
            return 0
        result: Dict[str, bool] = {}
        for key, value in changes.items():
            result = account.set_notification_preference(key, _parse_bool(value))
        _emit(result)
        return 0

    prefs.set_defaults(handler=_prefs)

    account = subparsers.add_parser("account", help="Account lifecycle.")
    account_sub = account.add_subparsers(dest="account_cmd", required=True)
    delete = account_sub.add_parser("delete", help="Permanently delete the signed-in account")
    delete.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    def _delete(ns: argparse.Namespace) -> int:
        ns.ctx.require_login()
        if not ns.yes and not _confirm("Supprimer définitivement votre compte ?"):
            return _show_alert(alerts.info("Suppression annulée."))
        return _mutation(ns.ctx.account().delete_account())

    delete.set_defaults(handler=_delete)


# ---------- customer ----------
def _add_customer_cli(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    dash = subparsers.add_parser("dashboard", help="Summary of quotes, invoices and reservations.")

    def _dashboard(ns: argparse.Namespace) -> int:
        user = ns.ctx.require_login()
        summary = Dashboard(ns.ctx.api, ns.ctx.cache).refresh(user)
        _emit(summary.to_dict())
        return 0

    dash.set_defaults(handler=_dashboard)

    quotes = subparsers.add_parser("quotes", help="List, show and answer quotes.")
    quotes_sub = quotes.add_subparsers(dest="quotes_cmd", required=True)
    quotes_sub.add_parser("list").set_defaults(handler=lambda ns: _printed(ns.ctx.customer().quotes()))
    for action in ("show", "accept", "reject"):
        p = quotes_sub.add_parser(action)
        p.add_argument("id")

    def _quote_show(ns: argparse.Namespace) -> int:
        view = ns.ctx.customer().quote(ns.id)
        out = dataclasses.asdict(view)
        out.update(
            status=view.status.label,
            total=format_currency(view.total_ttc),
            can_respond=view.can_respond,
            pdf_url=view.pdf_url,
            public_url=view.public_url,
        )
        _emit(out)
        return 0

    quotes_sub.choices["show"].set_defaults(handler=_quote_show)
    quotes_sub.choices["accept"].set_defaults(handler=lambda ns: _mutation(ns.ctx.customer().accept_quote(ns.id)))

    def _quote_reject(ns: argparse.Namespace) -> int:
        if not _confirm("Êtes-vous sûr de vouloir refuser ce devis ?"):
            return _show_alert(alerts.info("Refus annulé."))
        return _mutation(ns.ctx.customer().reject_quote(ns.id))

    quotes_sub.choices["reject"].set_defaults(handler=_quote_reject)

    invoices = subparsers.add_parser("invoices", help="List and show invoices.")
    inv_sub = invoices.add_subparsers(dest="invoices_cmd", required=True)
    inv_sub.add_parser("list").set_defaults(handler=lambda ns: _printed(ns.ctx.customer().invoices()))
    inv_show = inv_sub.add_parser("show")
    inv_show.add_argument("id")

    def _invoice_show(ns: argparse.Namespace) -> int:
        view = ns.ctx.customer().invoice(ns.id)
        out = dataclasses.asdict(view)
        out.update(
            status=view.status.label,
            total=format_currency(view.total_ttc),
            pdf_url=view.pdf_url,
            payment_url=view.payment_url if view.is_unpaid else None,
        )
        _emit(out)
        return 0

    inv_show.set_defaults(handler=_invoice_show)

    notif = subparsers.add_parser("notifications", help="List, read and watch notifications.")
    notif_sub = notif.add_subparsers(dest="notifications_cmd", required=True)

    def _notif_list(ns: argparse.Namespace) -> int:
        ns.ctx.require_login()
        items = ns.ctx.api.notifications.list()
        rows = []
        for n in items:
            route = notification_route(n)
            rows.append({**n, "category": category_label(n.get("type")), "route": list(route) if route else None})
        _emit({"unread": unread_count(items), "badge": badge_label(unread_count(items)), "items": rows})
        return 0

    notif_sub.add_parser("list").set_defaults(handler=_notif_list)
    read = notif_sub.add_parser("read")
    read.add_argument("id")

    def _notif_read(ns: argparse.Namespace) -> int:
        ns.ctx.require_login()
        ns.ctx.api.notifications.mark_read(ns.id)
        ns.ctx.cache.invalidate(("notifications",))
        return 0

    read.set_defaults(handler=_notif_read)

    watch = notif_sub.add_parser("watch", help="Poll and print new notifications until interrupted")
    watch.add_argument("--interval", type=float, help="Seconds between checks (default from settings)")

    def _notif_watch(ns: argparse.Namespace) -> int:
        ns.ctx.require_login()

        def on_new(n: Dict[str, Any]) -> None:
            print(f"[{category_label(n.get('type'))}] {n.get('title') or ''} - {n.get('message') or ''}", flush=True)

        poller = NotificationPoller(ns.ctx.api, on_new)
        try:
            poller.run(ns.interval or ns.ctx.settings.poll_interval)
        except KeyboardInterrupt:
            LOG.info("Watch mode interrupted by user. Exiting.")
        return 0

    watch.set_defaults(handler=_notif_watch)

    chat = subparsers.add_parser("chat", help="Conversations with the garage.")
    chat_sub = chat.add_subparsers(dest="chat_cmd", required=True)
    chat_sub.add_parser("list").set_defaults(handler=lambda ns: _printed(ns.ctx.customer().conversations()))
    msgs = chat_sub.add_parser("messages")
    msgs.add_argument("conversation_id")
    msgs.set_defaults(handler=lambda ns: _printed(ns.ctx.customer().messages(ns.conversation_id)))
    send = chat_sub.add_parser("send")
    send.add_argument("conversation_id")
    send.add_argument("content")

    def _chat_send(ns: argparse.Namespace) -> int:
        ns.ctx.customer().send_chat_message(ns.conversation_id, ns.content)
        return _show_alert(alerts.success("Message envoyé."))

    send.set_defaults(handler=_chat_send)

    assistant = subparsers.add_parser("assistant", help="Ask the MyJantes assistant.")
    assistant.add_argument("message")

    def _assistant(ns: argparse.Namespace) -> int:
        print(ns.ctx.customer().ask_assistant(ns.message))
        return 0

    assistant.set_defaults(handler=_assistant)

    ocr = subparsers.add_parser("ocr", help="Upload a document photo for text extraction.")
    ocr.add_argument("path")
    ocr.add_argument("--type", dest="document_type", choices=sorted(DOCUMENT_TYPES), default="autres")

    def _ocr(ns: argparse.Namespace) -> int:
        _emit(ns.ctx.customer().scan_document(ns.path, ns.document_type))
        return 0

    ocr.set_defaults(handler=_ocr)


# ---------- admin ----------
def _add_admin_cli(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    admin = subparsers.add_parser("admin", help="Back-office resources (admin role required).")
    res_sub = admin.add_subparsers(dest="resource", required=True)

    for name in RESOURCES:
        res = res_sub.add_parser(name, help=f"Manage {name}")
        act = res.add_subparsers(dest="action", required=True)

        ls = act.add_parser("list")
        ls.add_argument("--status")
        ls.add_argument("--search", default="")
        ls.set_defaults(
            handler=lambda ns: _printed(ns.ctx.back_office().list(ns.resource, status=ns.status, search=ns.search))
        )

        show = act.add_parser("show")
        show.add_argument("id")
        show.set_defaults(handler=lambda ns: _printed(ns.ctx.back_office().show(ns.resource, ns.id)))

        create = act.add_parser("create")
        create.add_argument("--data", required=True, help="JSON object")
        create.set_defaults(
            handler=lambda ns: _mutation(ns.ctx.back_office().create(ns.resource, _parse_json(ns.data)), echo=True)
        )

        update = act.add_parser("update")
        update.add_argument("id")
        update.add_argument("--data", required=True, help="JSON object")
        update.set_defaults(
            handler=lambda ns: _mutation(ns.ctx.back_office().update(ns.resource, ns.id, _parse_json(ns.data)))
        )

        delete = act.add_parser("delete")
        delete.add_argument("id")
        delete.add_argument("--yes", action="store_true")
        delete.set_defaults(handler=_admin_delete)

        stats = act.add_parser("stats")
        stats.set_defaults(handler=_admin_stats)

        if name == "payments":
            link = act.add_parser("link", help="Generate a payment link")
            link.add_argument("--amount", required=True)
            link.add_argument("--client")
            link.add_argument("--description")

            def _link(ns: argparse.Namespace) -> int:
                return _mutation(
                    ns.ctx.back_office().generate_payment_link(ns.amount, ns.client, ns.description),
                    echo=True,
                )

            link.set_defaults(handler=_link)
        if name == "users":
            role = act.add_parser("set-role")
            role.add_argument("id")
            role.add_argument("role")
            role.set_defaults(handler=lambda ns: _mutation(ns.ctx.back_office().set_user_role(ns.id, ns.role)))
        if name == "invoices":
            direct = act.add_parser("direct", help="Create an invoice without a quote")
            direct.add_argument("--amount", required=True)
            direct.add_argument("--client")
            direct.add_argument("--notes")
            direct.set_defaults(
                handler=lambda ns: _mutation(
                    ns.ctx.back_office().create_direct_invoice(ns.client, ns.amount, ns.notes), echo=True
                )
            )

    acc = subparsers.add_parser("accounting", help="Accounting reports and FEC export.")
    acc.add_argument("report", choices=list(ACCOUNTING_REPORTS) + ["fec"])
    acc.add_argument("--period", choices=PERIODS, default="all")

    def _accounting(ns: argparse.Namespace) -> int:
        office = ns.ctx.back_office()
        if ns.report == "fec":
            return _mutation(office.export_fec(ns.period), echo=True)
        report = office.accounting(ns.report, ns.period)
        _emit({"period": ns.period, "periodLabel": PERIOD_LABELS[ns.period], "report": report})
        return 0

    acc.set_defaults(handler=_accounting)

    export = subparsers.add_parser("export", help="Export data or the whole database.")
    export.add_argument("target", choices=["data", "database"])
    export.add_argument("--format", dest="fmt", default="json")

    def _export(ns: argparse.Namespace) -> int:
        office = ns.ctx.back_office()
        if ns.target == "data":
            return _mutation(office.export_data(ns.fmt))
        if not _confirm("Cette opération peut prendre du temps. Voulez-vous continuer ?"):
            return _show_alert(alerts.info("Export annulé."))
        return _mutation(office.export_database())

    export.set_defaults(handler=_export)

    audit = subparsers.add_parser("audit-logs", help="Audit trail with action classification.")
    audit.add_argument("--action", choices=["delete", "create", "update", "login", "logout", "export", "other"])
    audit.set_defaults(handler=lambda ns: _printed(ns.ctx.back_office().audit_logs(ns.action)))

    settings = subparsers.add_parser("settings", help="Garage settings.")
    settings_sub = settings.add_subparsers(dest="settings_cmd", required=True)
    settings_sub.add_parser("show").set_defaults(handler=lambda ns: _printed(ns.ctx.back_office().settings()))
    s_upd = settings_sub.add_parser("update")
    s_upd.add_argument("--data", required=True)
    s_upd.set_defaults(handler=lambda ns: _mutation(ns.ctx.back_office().update_settings(_parse_json(ns.data))))

    legal = settings_sub.add_parser("legal", help="Legal identity printed on documents")
    legal.add_argument("--data", help="JSON object; shows the current values when omitted")

    def _legal(ns: argparse.Namespace) -> int:
        office = ns.ctx.back_office()
        if not ns.data:
            _emit(office.garage_legal())
            return 0
        return _mutation(office.update_garage_legal(_parse_json(ns.data)))

    legal.set_defaults(handler=_legal)

    notif = settings_sub.add_parser("notifications", help="Admin notification channels")
    notif.add_argument("--set", action="append", dest="assignments", help="e.g. --set smsUrgent=on")

    def _notif_settings(ns: argparse.Namespace) -> int:
        office = ns.ctx.back_office()
        changes = {k: _parse_bool(v) for k, v in _parse_assignments(ns.assignments).items()}
        if not changes:
            _emit(office.notification_settings())
            return 0
        return _mutation(office.update_notification_settings(changes))

    notif.set_defaults(handler=_notif_settings)


def _admin_delete(ns: argparse.Namespace) -> int:
    office = ns.ctx.back_office()
    if not ns.yes and not _confirm(f"Supprimer l'élément {ns.id} ?"):
        return _show_alert(alerts.info("Suppression annulée."))
    return _mutation(office.delete(ns.resource, ns.id))


def _admin_stats(ns: argparse.Namespace) -> int:
    office = ns.ctx.back_office()
    if ns.resource == "invoices":
        stats: Any = office.invoice_stats()
        stats["revenueLabel"] = format_currency(stats["revenue"])
    elif ns.resource == "expenses":
        stats = office.expense_stats()
    elif ns.resource == "reviews":
        stats = office.review_stats()
    elif ns.resource == "engagements":
        stats = {"counts": office.counts("engagements"), "summary": office.engagement_summary()}
    else:
        stats = office.counts(ns.resource)
    _emit(stats)
    return 0


# ---------- server ----------
def _add_serve_cli(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    serve = subparsers.add_parser("serve", help="Run the local API proxy server.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)
    serve.add_argument("--log-level", default="info")
    serve.add_argument("--external-api", help="Upstream API base URL (defaults to settings)")
    serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )

    def _serve(ns: argparse.Namespace) -> int:
        from ..proxy import create_app
        import uvicorn

        set_level(ns.log_level)
        app = create_app(
            ns.external_api or ns.ctx.settings.api_url,
            allow_origins=ns.allow_origins,
        )
        uvicorn.run(app, host=ns.host, port=ns.port, log_level=ns.log_level)
        return 0

    serve.set_defaults(handler=_serve)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="myjantes",
        description="Command-line client for the MyJantes garage platform.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug details to stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_session_cli(subparsers)
    _add_account_cli(subparsers)
    _add_customer_cli(subparsers)
    _add_admin_cli(subparsers)
    _add_serve_cli(subparsers)
    return parser


def main(argv: Sequence[str] | None = None, *, context: Optional[CliContext] = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.debug(f"CLI invoked with arguments: {provided}")

    args = build_parser().parse_args(provided)
    if args.verbose:
        set_level("DEBUG")
    try:
        args.ctx = context or CliContext.from_settings(load_settings())
        code = args.handler(args)
    except MyJantesError as e:
        code = _show_alert(alerts.error_from(e, GENERIC_ERROR))
    LOG.debug(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
