from __future__ import annotations

import json
from datetime import date, timedelta

import pytest

from conftest import auth, expense_payload
from services.history_service import money_details


def _family(client, user):
    return client.post("/api/families", json={"name": "Silva", **auth(user)}).json()["family"]


def _list(client, user, **params):
    return client.get(f"/api/expenses/{user['id']}", params={"deviceToken": user["token"], **params})


def test_create_expense_returns_record(client, ana):
    response = client.post("/api/expenses", json=expense_payload(ana, paymentType="transferência"))
    assert response.status_code == 201
    expense = response.json()["expense"]
    assert expense["description"] == "Aluguel"
    assert expense["amount"] == 1200
    assert expense["paymentType"] == "transfer"
    assert expense["user"] == ana["id"]
    assert expense["family"] is None
    assert "deviceToken" not in expense


def test_create_expense_records_history(client, ana):
    client.post("/api/expenses", json=expense_payload(ana, kind="income", description="Salário", amount=3000))
    history = client.get("/api/history", params=auth(ana)).json()
    assert history[0]["action"] == "Receita adicionada"
    assert history[0]["details"] == "Salário - R$ 3000"


def test_missing_required_field_is_bad_request(client, ana):
    payload = expense_payload(ana)
    del payload["paymentType"]
    response = client.post("/api/expenses", json=payload)
    assert response.status_code == 400
    assert "paymentType" in response.json()["error"]


def test_personal_list_is_sorted_by_due_date(client, ana):
    today = date.today()
    for offset, name in [(5, "later"), (-3, "earlier"), (0, "today")]:
        client.post("/api/expenses", json=expense_payload(
            ana, description=name, dueDate=(today + timedelta(days=offset)).isoformat()))
    names = [e["description"] for e in _list(client, ana).json()]
    assert names == ["earlier", "today", "later"]


def test_family_expense_is_not_personal(client, ana, bruno):
    family = _family(client, ana)
    client.post("/api/families/join", json={"code": family["code"], **auth(bruno)})
    response = client.post("/api/expenses", json=expense_payload(ana, familyId=family["id"], description="Luz"))
    assert response.status_code == 201
    client.post("/api/expenses", json=expense_payload(ana, description="Pessoal"))

    family_list = _list(client, bruno, familyId=family["id"]).json()
    assert [e["description"] for e in family_list] == ["Luz"]
    assert family_list[0]["owner"]["username"] == "ana"
    assert family_list[0]["owner"]["photoPath"] == ana["photoPath"]

    personal = _list(client, ana).json()
    assert [e["description"] for e in personal] == ["Pessoal"]


def test_family_expense_requires_membership(client, ana, bruno):
    family = _family(client, ana)
    response = client.post("/api/expenses", json=expense_payload(bruno, familyId=family["id"]))
    assert response.status_code == 403
    assert _list(client, bruno, familyId=family["id"]).status_code == 403


def test_delete_expense(client, ana):
    expense = client.post("/api/expenses", json=expense_payload(ana)).json()["expense"]
    response = client.request("DELETE", f"/api/expenses/{expense['id']}", json=auth(ana))
    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert _list(client, ana).json() == []

    history = client.get("/api/history", params=auth(ana)).json()
    assert history[0]["action"] == "Despesa removida"
    assert history[0]["details"] == "Aluguel - R$ 1200"


def test_delete_non_owned_expense_leaves_it_untouched(client, ana, bruno):
    expense = client.post("/api/expenses", json=expense_payload(ana)).json()["expense"]
    response = client.request("DELETE", f"/api/expenses/{expense['id']}", json=auth(bruno))
    assert response.status_code == 404
    assert [e["id"] for e in _list(client, ana).json()] == [expense["id"]]


def test_delete_unknown_expense(client, ana):
    response = client.request("DELETE", "/api/expenses/missing", json=auth(ana))
    assert response.status_code == 404


@pytest.mark.parametrize("amount", [float("inf"), float("nan")])
def test_non_finite_amount_is_rejected_and_not_stored(client, ana, amount):
    # json.dumps writes Infinity/NaN literals, which the request parser accepts
    body = json.dumps(expense_payload(ana, amount=amount))
    response = client.post("/api/expenses", content=body, headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert "amount" in response.json()["error"]

    assert _list(client, ana).json() == []
    assert client.get("/api/history", params=auth(ana)).json() == []
    assert client.get(f"/api/reports/weekly/{ana['id']}", params={"deviceToken": ana["token"]}).status_code == 200
    assert client.get(f"/api/reports/monthly/{ana['id']}", params={"deviceToken": ana["token"]}).status_code == 200


def test_money_details_formats_amounts_plainly():
    assert money_details("Aluguel", 1200) == "Aluguel - R$ 1200"
    assert money_details("Aluguel", 1200.0) == "Aluguel - R$ 1200"
    assert money_details("Padaria", 12.5) == "Padaria - R$ 12.5"
