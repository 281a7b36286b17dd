from decimal import Decimal

import pytest

from ecoearn_admin.core.errors import InvalidAmount
from ecoearn_admin.services.ledger import parse_amount


def fund(client, type_, amount, description=None):
    body = {"type": type_, "amount": amount}
    if description is not None:
        body["description"] = description
    return client.post("/transactions", json=body)


def balance(client):
    return client.get("/transactions/balance").json()["balance"]


@pytest.mark.parametrize("value,expected", [
    ("12.345", Decimal("12.35")),
    (" 7 ", Decimal("7.00")),
    (100, Decimal("100.00")),
    (0.1, Decimal("0.10")),
    ("999999999999.99", Decimal("999999999999.99")),
])
def test_parse_amount(value, expected):
    assert parse_amount(value) == expected


@pytest.mark.parametrize("value", ["", "abc", "-5", "0", "0.004", "nan", "Infinity", None, "1e30", "1e12", "-1e30"])
def test_parse_amount_rejects(value):
    with pytest.raises(InvalidAmount) as e:
        parse_amount(value)
    assert e.value.message == "Please enter a valid positive amount."


def test_add_and_withdraw_move_balance(client):
    assert balance(client) == 0.0

    r = fund(client, "add", 100)
    assert r.status_code == 201
    assert r.json()["description"] == "Admin added funds"
    assert r.json()["amount"] == 100.0

    r = fund(client, "withdraw", "30.50", "Partner payout")
    assert r.status_code == 201
    assert r.json()["description"] == "Partner payout"

    assert balance(client) == 69.5


def test_withdraw_default_description(client):
    fund(client, "add", 10)
    assert fund(client, "withdraw", 4).json()["description"] == "Admin withdrew funds"


def test_withdraw_beyond_balance_is_refused(client):
    fund(client, "add", 20)
    r = fund(client, "withdraw", 25)
    assert r.status_code == 400
    assert r.json()["detail"].startswith("Insufficient admin balance")
    assert balance(client) == 20.0


@pytest.mark.parametrize("amount", ["abc", -5, 0, "", "1e30", 1e30])
def test_invalid_amounts(client, amount):
    r = fund(client, "add", amount)
    assert r.status_code == 400
    assert r.json()["detail"] == "Please enter a valid positive amount."


def test_unknown_type_is_a_validation_error(client):
    assert fund(client, "refund", 5).status_code == 422


def test_history_filters_and_search(client):
    fund(client, "add", 50, "Quarterly top-up")
    fund(client, "add", 25)
    fund(client, "withdraw", 10, "Voucher settlement")

    rows = client.get("/transactions").json()
    assert [t["description"] for t in rows] == ["Voucher settlement", "Admin added funds", "Quarterly top-up"]

    rows = client.get("/transactions", params={"type": "withdraw"}).json()
    assert [t["type"] for t in rows] == ["withdraw"]

    rows = client.get("/transactions", params={"search": "quarterly"}).json()
    assert [t["description"] for t in rows] == ["Quarterly top-up"]

    assert client.get("/transactions", params={"type": "bonus"}).status_code == 422


def test_ledger_is_admin_only(client, login):
    login("U1")
    assert client.get("/transactions").status_code == 403
    assert fund(client, "add", 5).status_code == 403


def test_search_treats_wildcards_literally(client):
    fund(client, "add", 50, "50% partner match")
    fund(client, "add", 20, "Top-up 500")
    fund(client, "add", 5, "bulk_refund")
    fund(client, "add", 5, "bulk refund")

    rows = client.get("/transactions", params={"search": "50%"}).json()
    assert [t["description"] for t in rows] == ["50% partner match"]

    rows = client.get("/transactions", params={"search": "bulk_"}).json()
    assert [t["description"] for t in rows] == ["bulk_refund"]
