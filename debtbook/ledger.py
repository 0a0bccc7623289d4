# -*- coding: utf-8 -*-
"""
Операции учёта с проверкой прав.

Каждая функция первым аргументом получает Caller (кто и с какой ролью
вызывает) — роль не берётся из сессии/глобального состояния. Сначала
проверяются права, потом идёт обращение к хранилищу. Ошибки хранилища
пробрасываются без изменений.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Mapping, Optional

from . import store
from .acl import Caller, require_delete, require_write
from .balance import Balance, compute_balance, debtors_with_balances
from .errors import Forbidden, NotFound, OverpaymentWarning, StoreUnavailable, ValidationError

log = logging.getLogger(__name__)


def operation(name: str):
    """Логирует отказ в доступе и недоступность хранилища с именем операции."""
    def decorator(f):
        @wraps(f)
        def wrapper(caller: Caller, *args, **kwargs):
            try:
                return f(caller, *args, **kwargs)
            except Forbidden as e:
                log.info("%s denied for %s: %s", name, caller.user_id, e)
                raise
            except StoreUnavailable:
                log.warning("%s failed: store unavailable", name)
                raise
        return wrapper
    return decorator


@dataclass(frozen=True)
class PaymentResult:
    payment: dict
    balance: Balance
    warning: Optional[OverpaymentWarning] = None

    def as_dict(self) -> dict:
        return {
            "payment": self.payment,
            "balance": self.balance.as_dict(),
            "warning": self.warning.as_dict() if self.warning else None,
        }


def _with_balance(debtor, balance: Balance) -> dict:
    row = debtor.to_dict()
    row.update(balance.as_dict())
    return row


# ------------ чтение (любая роль) ---------------------------------------------
@operation("list_debtors")
def list_debtors(caller: Caller, query: str | None = None) -> list[dict]:
    return [_with_balance(d, b) for d, b in debtors_with_balances(query)]


@operation("list_outstanding")
def list_outstanding(caller: Caller) -> list[dict]:
    return [_with_balance(d, b) for d, b in debtors_with_balances() if b.balance > 0]


@operation("get_debtor")
def get_debtor(caller: Caller, debtor_id) -> dict:
    d = store.get_debtor(debtor_id)
    if d is None:
        raise NotFound("debtor", debtor_id)
    return _with_balance(d, compute_balance(d.id))


@operation("search_debtor")
def search_debtor(caller: Caller, query) -> Optional[dict]:
    """
    Один должник по подстроке имени/телефона + история долгов и платежей.

    При нескольких совпадениях побеждает наименьший id. Если ничего не найдено —
    None (обычный результат, не ошибка).
    """
    q = store.clean_text(query)
    if not q:
        raise ValidationError("query", "must not be empty")
    matches = store.find_debtors(q)
    if not matches:
        return None
    d = matches[0]
    row = _with_balance(d, compute_balance(d.id))
    row["debts"] = [x.to_dict() for x in store.debts_for(d.id)]
    row["payments"] = [x.to_dict() for x in store.payments_for(d.id)]
    return row


# ------------ запись (staff/admin) --------------------------------------------
@operation("register_debtor")
def register_debtor(caller: Caller, fields: Mapping[str, Any]) -> dict:
    require_write(caller)
    return store.create_debtor(caller.user_id, fields).to_dict()


@operation("update_debtor")
def update_debtor(caller: Caller, debtor_id, fields: Mapping[str, Any]) -> dict:
    require_write(caller)
    return store.update_debtor(debtor_id, fields).to_dict()


@operation("record_debt")
def record_debt(caller: Caller, debtor_id, amount, reason, recorded_at=None) -> dict:
    require_write(caller)
    return store.create_debt(caller.user_id, debtor_id, amount, reason, recorded_at).to_dict()


@operation("update_debt")
def update_debt(caller: Caller, debt_id, fields: Mapping[str, Any]) -> dict:
    require_write(caller)
    return store.update_debt(debt_id, fields).to_dict()


@operation("update_payment")
def update_payment(caller: Caller, payment_id, fields: Mapping[str, Any]) -> dict:
    require_write(caller)
    return store.update_payment(payment_id, fields).to_dict()


@operation("record_payment")
def record_payment(caller: Caller, debtor_id, amount, paid_at=None) -> PaymentResult:
    """
    Платёж записывается всегда; если он больше текущего остатка,
    вместе с результатом возвращается OverpaymentWarning.
    """
    require_write(caller)
    value = store.parse_amount(amount)
    before = compute_balance(debtor_id)
    payment = store.create_payment(caller.user_id, debtor_id, value, paid_at)
    warning = None
    if value > before.balance:
        warning = OverpaymentWarning(amount=value, balance=before.balance)
        log.warning("payment %s exceeds balance of debtor %s by %s", payment.id, payment.debtor_id, warning.excess)
    return PaymentResult(payment=payment.to_dict(), balance=compute_balance(payment.debtor_id), warning=warning)


# ------------ удаление (admin) ------------------------------------------------
@operation("delete_debtor")
def delete_debtor(caller: Caller, debtor_id) -> dict:
    require_delete(caller)
    return store.delete_debtor(debtor_id)


@operation("delete_debt")
def delete_debt(caller: Caller, debt_id) -> None:
    require_delete(caller)
    store.delete_debt(debt_id)


@operation("delete_payment")
def delete_payment(caller: Caller, payment_id) -> None:
    require_delete(caller)
    store.delete_payment(payment_id)
