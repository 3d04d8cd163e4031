from __future__ import annotations

from datetime import date, timedelta

from conftest import auth, current_week_day, expense_payload
from models.expense import Expense
from services.reports_service import build_monthly_chart, build_weekly_chart


def _expense(due_date, amount, kind="expense", payment_type="cash"):
    return Expense(
        id="x", user="u", description="d", amount=amount, kind=kind,
        due_date=due_date, payment_type=payment_type,
    )


def test_weekly_chart_has_seven_zero_filled_slots():
    chart = build_weekly_chart([], locale="pt-BR")
    assert chart["labels"] == ["Dom", "Seg", "Ter", "Qua", "Qui", "Sex", "Sáb"]
    assert chart["expenseData"] == [0] * 7
    assert chart["incomeData"] == [0] * 7


def test_weekly_chart_groups_by_day_and_kind():
    monday, saturday = date(2024, 5, 13), date(2024, 5, 18)
    chart = build_weekly_chart([
        _expense(monday, 10),
        _expense(monday, 5),
        _expense(saturday, 100, kind="income"),
    ], locale="en")
    assert chart["labels"][0] == "Sun"
    assert chart["expenseData"] == [0, 15, 0, 0, 0, 0, 0]
    assert chart["incomeData"] == [0, 0, 0, 0, 0, 0, 100]


def test_monthly_chart_uses_fixed_payment_order():
    chart = build_monthly_chart([
        _expense(date(2024, 5, 1), 10, payment_type="cash"),
        _expense(date(2024, 5, 2), 20, payment_type="other"),
        _expense(date(2024, 5, 3), 5, payment_type="cash", kind="income"),
    ])
    assert chart["labels"] == ["Cash", "Card", "Bill", "Transfer", "Other"]
    assert chart["data"] == [15, 0, 0, 0, 20]


def test_weekly_report_scenario(client, ana):
    monday = current_week_day(1)
    response = client.post("/api/expenses", json=expense_payload(
        ana, description="Aluguel", amount=1200, kind="expense",
        dueDate=monday.isoformat(), paymentType="transferência", responsavel="Ana"))
    assert response.status_code == 201

    report = client.get(f"/api/reports/weekly/{ana['id']}", params={"deviceToken": ana["token"]})
    assert report.status_code == 200
    body = report.json()
    assert [e["description"] for e in body["expenses"]] == ["Aluguel"]
    assert body["chartData"]["expenseData"] == [0, 1200, 0, 0, 0, 0, 0]
    assert body["chartData"]["incomeData"] == [0] * 7


def test_weekly_report_ignores_other_weeks(client, ana):
    sunday = current_week_day(0)
    saturday = current_week_day(6)
    for due, amount in [(sunday, 1), (saturday, 2), (sunday - timedelta(days=1), 50), (saturday + timedelta(days=1), 70)]:
        client.post("/api/expenses", json=expense_payload(ana, amount=amount, dueDate=due.isoformat()))

    body = client.get(f"/api/reports/weekly/{ana['id']}", params={"deviceToken": ana["token"]}).json()
    assert len(body["expenses"]) == 2
    assert body["chartData"]["expenseData"] == [1, 0, 0, 0, 0, 0, 2]


def test_monthly_report_sums_per_payment_method(client, ana):
    first = date.today().replace(day=1)
    entries = [
        (first, 10, "dinheiro", "expense"),
        (date.today(), 5, "cash", "income"),
        (first, 20, "card", "expense"),
        (first - timedelta(days=1), 999, "card", "expense"),
    ]
    for due, amount, payment, kind in entries:
        client.post("/api/expenses", json=expense_payload(
            ana, amount=amount, paymentType=payment, kind=kind, dueDate=due.isoformat()))

    body = client.get(f"/api/reports/monthly/{ana['id']}", params={"deviceToken": ana["token"]}).json()
    assert len(body["expenses"]) == 3
    assert body["chartData"]["labels"] == ["Cash", "Card", "Bill", "Transfer", "Other"]
    assert body["chartData"]["data"] == [15, 20, 0, 0, 0]


def test_family_report_requires_membership(client, ana, bruno):
    family = client.post("/api/families", json={"name": "Silva", **auth(ana)}).json()["family"]
    client.post("/api/expenses", json=expense_payload(ana, familyId=family["id"], dueDate=current_week_day(2).isoformat()))

    ok = client.get(f"/api/reports/weekly/{ana['id']}", params={"deviceToken": ana["token"], "familyId": family["id"]})
    assert ok.json()["chartData"]["expenseData"][2] == 1200

    denied = client.get(f"/api/reports/monthly/{bruno['id']}", params={"deviceToken": bruno["token"], "familyId": family["id"]})
    assert denied.status_code == 403
