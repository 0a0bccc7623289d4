# -*- coding: utf-8 -*-
"""
Остатки по должникам.

Остаток нигде не хранится: каждый раз считается заново из строк debts/payments
(Σ долгов − Σ платежей), поэтому рассинхронизации со строками быть не может.
Суммы — только Decimal с двумя знаками.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func, or_, select

from .extensions import db
from .models import Debt, Debtor, Payment, money
from .store import clean_text, reading

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class Balance:
    total_debt: Decimal = ZERO
    total_paid: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.total_debt - self.total_paid

    def as_dict(self) -> dict:
        return {
            "total_debt": self.total_debt,
            "total_paid": self.total_paid,
            "balance": self.balance,
        }


def _sum(model, debtor_id: str) -> Decimal:
    stmt = select(func.sum(model.amount)).where(model.debtor_id == debtor_id)
    return money(db.session.scalar(stmt))


def compute_balance(debtor_id) -> Balance:
    did = clean_text(debtor_id)
    with reading("compute_balance"):
        return Balance(total_debt=_sum(Debt, did), total_paid=_sum(Payment, did))


def _grouped(model, ids=None):
    stmt = select(model.debtor_id, func.sum(model.amount).label("total")).group_by(model.debtor_id)
    if ids is not None:
        stmt = stmt.where(model.debtor_id.in_(ids))
    return stmt


def compute_balances(debtor_ids: Iterable) -> dict[str, Balance]:
    """То же, что compute_balance для каждого id, но двумя запросами GROUP BY."""
    ids = list(dict.fromkeys(clean_text(i) for i in debtor_ids))
    if not ids:
        return {}
    with reading("compute_balances"):
        debts = {r[0]: money(r[1]) for r in db.session.execute(_grouped(Debt, ids))}
        paid = {r[0]: money(r[1]) for r in db.session.execute(_grouped(Payment, ids))}
    return {
        i: Balance(total_debt=debts.get(i, ZERO), total_paid=paid.get(i, ZERO))
        for i in ids
    }


def debtors_with_balances(query: str | None = None) -> list[tuple[Debtor, Balance]]:
    """Список должников с остатками одним запросом (без N+1), по имени."""
    debt_totals = _grouped(Debt).subquery()
    paid_totals = _grouped(Payment).subquery()
    stmt = (
        select(Debtor, debt_totals.c.total, paid_totals.c.total)
        .outerjoin(debt_totals, debt_totals.c.debtor_id == Debtor.id)
        .outerjoin(paid_totals, paid_totals.c.debtor_id == Debtor.id)
        .order_by(func.lower(Debtor.name), Debtor.name, Debtor.id)
    )
    q = clean_text(query)
    if q:
        stmt = stmt.where(or_(Debtor.name.icontains(q, autoescape=True),
                              Debtor.phone_number.icontains(q, autoescape=True)))
    with reading("debtors_with_balances"):
        rows = db.session.execute(stmt).all()
    return [
        (debtor, Balance(total_debt=money(total_debt), total_paid=money(total_paid)))
        for debtor, total_debt, total_paid in rows
    ]
