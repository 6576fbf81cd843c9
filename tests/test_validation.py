import pytest

from myjantes.domain.validation import (
    password_strength,
    validate_credit_note,
    validate_delivery_note,
    validate_email,
    validate_expense,
    validate_invoice_create,
    validate_login,
    validate_new_password,
    validate_password_change,
    validate_payment_link,
    validate_rating,
    validate_reservation_create,
    validate_reset_code,
    validate_role,
)
from myjantes.errors import ValidationError


def _message(fn, *args):
    with pytest.raises(ValidationError) as exc:
        fn(*args)
    return exc.value.message


def test_email_rules():
    assert _message(validate_email, "  ") == "Veuillez saisir votre adresse email."
    assert _message(validate_email, "marie@garage") == "Veuillez saisir une adresse email valide."
    assert validate_email("  marie@garage.fr ") == "marie@garage.fr"


def test_login_requires_both_fields():
    assert _message(validate_login, "a@b.fr", "") == "Veuillez remplir tous les champs."
    assert validate_login(" a@b.fr ", "secret") == {"email": "a@b.fr", "password": "secret"}


def test_reset_code():
    assert _message(validate_reset_code, "") == "Veuillez saisir le code reçu par email."
    assert _message(validate_reset_code, " 12 ") == "Le code doit contenir au moins 4 caractères."
    assert validate_reset_code(" 1234 ") == "1234"


def test_new_password_rules_in_order():
    assert _message(validate_new_password, "", "x") == "Veuillez remplir les deux champs."
    with pytest.raises(ValidationError) as exc:
        validate_new_password("short", "short")
    assert exc.value.title == "Mot de passe trop court"
    assert exc.value.message == "Le mot de passe doit contenir au moins 8 caractères."
    assert _message(validate_new_password, "longenough", "different") == "Les mots de passe ne correspondent pas."
    assert validate_new_password("longenough", "longenough") == "longenough"


def test_password_change():
    assert _message(validate_password_change, "", "newpassword", "newpassword") == (
        "Veuillez saisir votre mot de passe actuel."
    )
    assert _message(validate_password_change, "old", "short", "short") == (
        "Le nouveau mot de passe doit contenir au moins 8 caractères."
    )
    out = validate_password_change("old", "newpassword", "newpassword")
    assert out == {"current_password": "old", "new_password": "newpassword"}


def test_password_strength_is_informational():
    assert password_strength("Abcdefg1") == {"min_length": True, "uppercase": True, "digit": True}
    assert password_strength(None) == {"min_length": False, "uppercase": False, "digit": False}


def test_invoice_and_expense_payloads():
    assert validate_invoice_create(" 42 ", "120,50", "jantes") == {
        "totalTTC": 120.5,
        "notes": "jantes",
        "clientId": "42",
    }
    assert "clientId" not in validate_invoice_create("", "10")
    with pytest.raises(ValidationError) as exc:
        validate_expense("", "10")
    assert exc.value.title == "Champs requis"
    assert exc.value.message == "La description et le montant sont obligatoires."
    assert validate_expense("Peinture", "89,90", "", "05/03/2024") == {
        "description": "Peinture",
        "amount": 89.9,
        "date": "2024-03-05",
    }


def test_payment_link_amount_must_be_positive():
    assert _message(validate_payment_link, "0") == "Veuillez saisir un montant valide."
    assert _message(validate_payment_link, "") == "Veuillez saisir un montant valide."
    assert validate_payment_link("45", None, " Acompte ") == {"amount": 45.0, "description": "Acompte"}


def test_other_documents():
    assert _message(validate_reservation_create, {"date": ""}) == "Veuillez renseigner une date."
    assert validate_reservation_create({"date": "05/03/2024"})["date"] == "2024-03-05"
    assert _message(validate_credit_note, {}) == "Veuillez saisir un montant."
    assert validate_credit_note({"amount": "12,5", "reason": "geste"}) == {"amount": 12.5, "reason": "geste"}
    assert _message(validate_delivery_note, {"clientId": " "}) == "Veuillez sélectionner un client."


def test_roles_and_ratings():
    assert validate_role("client_professionnel") == "client_professionnel"
    with pytest.raises(ValidationError):
        validate_role("owner")
    assert validate_rating("4") == 4
    with pytest.raises(ValidationError):
        validate_rating(6)
    with pytest.raises(ValidationError):
        validate_rating("five")
