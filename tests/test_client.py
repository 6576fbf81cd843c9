import pytest
import requests

from myjantes.errors import CONNECTION_ERROR_MESSAGE, ApiConnectionError, ApiError, describe_error


def test_get_decodes_json_and_drops_none_params(client, session):
    session.add("GET", "/api/quotes", [{"id": 1}])
    assert client.get("/api/quotes", period=None, page=2) == [{"id": 1}]
    call = session.calls[-1]
    assert call["params"] == {"page": 2}
    assert call["timeout"] == 30
    assert call["verify"] is True


def test_empty_and_text_bodies(client, session):
    session.add("DELETE", "/api/admin/clients/1", None, status=204)
    session.add("GET", "/api/admin/accounting/export-fec", "JournalCode|JournalLib")
    assert client.delete("/api/admin/clients/1") is None
    assert client.get("/api/admin/accounting/export-fec") == "JournalCode|JournalLib"


def test_server_message_becomes_error_message(client, session):
    session.add("POST", "/api/auth/login", {"message": "Identifiants invalides"}, status=401, reason="Unauthorized")
    with pytest.raises(ApiError) as exc:
        client.post("/api/auth/login", {"email": "a@b.fr", "password": "x"})
    assert exc.value.status_code == 401
    assert exc.value.message == "Identifiants invalides"
    assert describe_error(exc.value, "fallback") == "Identifiants invalides"


def test_missing_server_message_falls_back_to_status_line(client, session):
    session.add("GET", "/api/reservations/9", "<html>oops</html>", status=500, reason="Internal Server Error")
    with pytest.raises(ApiError) as exc:
        client.get("/api/reservations/9")
    assert exc.value.message == "500 Internal Server Error"
    # Unrouted paths answer 404 Not Found
    with pytest.raises(ApiError) as exc:
        client.get("/api/unknown")
    assert exc.value.is_not_found
    assert "Not Found" in exc.value.message


def test_transport_errors_become_connection_errors(client, session):
    session.add("GET", "/api/services", error=requests.ConnectionError("refused"))
    with pytest.raises(ApiConnectionError) as exc:
        client.get("/api/services")
    assert exc.value.message == CONNECTION_ERROR_MESSAGE
    assert exc.value.status_code == 0


def test_session_cookie_round_trip(client, session):
    assert client.session_cookie is None
    client.set_session_cookie("connect.sid=abc; theme=dark")
    assert session.cookies.get("connect.sid") == "abc"
    assert client.session_cookie == "connect.sid=abc; theme=dark"
    client.set_session_cookie(None)
    assert client.session_cookie is None


def test_describe_error_hides_unknown_errors():
    assert describe_error(RuntimeError("boom"), "Une erreur est survenue.") == "Une erreur est survenue."


def test_public_url(client):
    assert client.public_url("api/public/quotes/t/pdf") == "https://api.test/api/public/quotes/t/pdf"
