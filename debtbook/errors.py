# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


class LedgerError(Exception):
    """Базовая ошибка учёта долгов."""


class ValidationError(LedgerError):
    """Некорректный ввод: исправляется пользователем, повторять запрос бессмысленно."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class Forbidden(LedgerError):
    def __init__(self, required_role):
        value = getattr(required_role, "value", required_role)
        super().__init__(f"{value} role required")
        self.required_role = required_role


class NotFound(LedgerError):
    def __init__(self, resource: str, resource_id=None):
        super().__init__(f"{resource} not found" + (f": {resource_id}" if resource_id else ""))
        self.resource = resource
        self.resource_id = resource_id


class StoreUnavailable(LedgerError):
    """Хранилище недоступно (соединение, таймаут транзакции) — можно повторить позже."""

    def __init__(self, operation: str, cause: Exception | None = None):
        super().__init__(f"store unavailable during {operation}")
        self.operation = operation
        self.cause = cause


@dataclass(frozen=True)
class OverpaymentWarning:
    """Не ошибка: платёж записан, но превышает текущий остаток долга."""

    amount: Decimal
    balance: Decimal

    @property
    def excess(self) -> Decimal:
        return self.amount - self.balance

    def as_dict(self) -> dict:
        return {
            "kind": "overpayment",
            "amount": str(self.amount),
            "balance": str(self.balance),
            "excess": str(self.excess),
        }
