# -*- coding: utf-8 -*-
"""
Хранилище учёта: должники, долги, платежи.

Вся проверка входных данных выполняется здесь, на границе хранилища, —
значения от вызывающего кода не считаются доверенными. Каждая запись идёт
одной транзакцией; сбои соединения превращаются в StoreUnavailable.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterator, Mapping

from sqlalchemy import or_, select
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from .errors import NotFound, StoreUnavailable, ValidationError
from .extensions import db
from .models import CENT, Debt, Debtor, Payment, User

log = logging.getLogger(__name__)

MAX_AMOUNT = Decimal("9999999999.99")  # NUMERIC(12,2)
DEBTOR_FIELDS = ("name", "phone_number", "guarantor_name", "guarantor_phone")
DEBT_FIELDS = ("amount", "reason", "date_recorded")
PAYMENT_FIELDS = ("amount", "date_paid")


# ------------ транзакции ------------------------------------------------------
def _rollback():
    try:
        db.session.rollback()
    except SQLAlchemyError:
        log.exception("rollback failed")


def _is_unavailable(exc: Exception) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError, PoolTimeoutError)):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


@contextmanager
def transaction(operation: str) -> Iterator[Any]:
    """Одна запись — одна транзакция: commit при успехе, rollback при любой ошибке."""
    try:
        yield db.session
        db.session.commit()
    except SQLAlchemyError as e:
        _rollback()
        if _is_unavailable(e):
            log.warning("store unavailable during %s: %s", operation, e)
            raise StoreUnavailable(operation, e) from e
        raise
    except Exception:
        _rollback()
        raise


@contextmanager
def reading(operation: str) -> Iterator[Any]:
    try:
        yield db.session
    except SQLAlchemyError as e:
        if _is_unavailable(e):
            _rollback()
            log.warning("store unavailable during %s: %s", operation, e)
            raise StoreUnavailable(operation, e) from e
        raise


# ------------ нормализация ввода ----------------------------------------------
def clean_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _required_text(fields: Mapping[str, Any], name: str) -> str:
    v = clean_text(fields.get(name))
    if not v:
        raise ValidationError(name, "must not be empty")
    return v


def _optional_text(value) -> str | None:
    return clean_text(value) or None


def parse_amount(value, field: str = "amount") -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(field, "is required")
    try:
        d = value if isinstance(value, Decimal) else Decimal(clean_text(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(field, "must be a decimal number")
    if not d.is_finite():
        raise ValidationError(field, "must be a finite number")
    if d <= 0:
        raise ValidationError(field, "must be greater than zero")
    # до quantize: иначе 1e30 не влезает в точность контекста
    if d > MAX_AMOUNT:
        raise ValidationError(field, "is too large")
    if d != d.quantize(CENT):
        raise ValidationError(field, "must have at most 2 fractional digits")
    return d.quantize(CENT)


def parse_timestamp(value, field: str) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(clean_text(value))
        except ValueError:
            raise ValidationError(field, "must be an ISO-8601 timestamp")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    # SQLite хранит время без зоны, поэтому приводим к UTC заранее
    return dt.astimezone(timezone.utc)


def _check_fields(fields: Mapping[str, Any]) -> None:
    for k in fields:
        if k not in DEBTOR_FIELDS:
            raise ValidationError(k, "unknown field")


def _require_actor(actor_id) -> str:
    uid = clean_text(actor_id)
    if not uid or db.session.get(User, uid) is None:
        raise ValidationError("created_by", "unknown identity")
    return uid


def _require_debtor(debtor_id) -> Debtor:
    did = clean_text(debtor_id)
    debtor = db.session.get(Debtor, did) if did else None
    if debtor is None:
        raise ValidationError("debtor_id", "unknown debtor")
    return debtor


# ------------ должники --------------------------------------------------------
def create_debtor(actor_id, fields: Mapping[str, Any]) -> Debtor:
    _check_fields(fields)
    with transaction("create_debtor"):
        creator = _require_actor(actor_id)
        d = Debtor(
            name=_required_text(fields, "name"),
            phone_number=_required_text(fields, "phone_number"),
            guarantor_name=_optional_text(fields.get("guarantor_name")),
            guarantor_phone=_optional_text(fields.get("guarantor_phone")),
            created_by=creator,
        )
        db.session.add(d)
    log.info("debtor %s registered by %s", d.id, actor_id)
    return d


def get_debtor(debtor_id) -> Debtor | None:
    did = clean_text(debtor_id)
    if not did:
        return None
    with reading("get_debtor"):
        return db.session.get(Debtor, did)


def update_debtor(debtor_id, fields: Mapping[str, Any]) -> Debtor:
    _check_fields(fields)
    with transaction("update_debtor"):
        d = db.session.get(Debtor, clean_text(debtor_id))
        if d is None:
            raise NotFound("debtor", debtor_id)
        for name in ("name", "phone_number"):
            if name in fields:
                setattr(d, name, _required_text(fields, name))
        for name in ("guarantor_name", "guarantor_phone"):
            if name in fields:
                setattr(d, name, _optional_text(fields[name]))
        # onupdate не сработает, если значения не изменились
        d.updated_at = datetime.now(timezone.utc)
    return d


def delete_debtor(debtor_id) -> dict:
    """Удаляет должника вместе со всеми его долгами и платежами (всё или ничего)."""
    with transaction("delete_debtor"):
        d = db.session.get(Debtor, clean_text(debtor_id))
        if d is None:
            raise NotFound("debtor", debtor_id)
        counts = {"debts": len(d.debts), "payments": len(d.payments)}
        db.session.delete(d)
    log.info("debtor %s deleted with %s debts, %s payments", debtor_id, counts["debts"], counts["payments"])
    return counts


def find_debtors(query: str) -> list[Debtor]:
    """Подстрока в имени или телефоне без учёта регистра; порядок — по id."""
    q = clean_text(query)
    with reading("find_debtors"):
        stmt = (
            select(Debtor)
            .where(or_(Debtor.name.icontains(q, autoescape=True),
                       Debtor.phone_number.icontains(q, autoescape=True)))
            .order_by(Debtor.id)
        )
        return list(db.session.scalars(stmt))


# ------------ долги и платежи -------------------------------------------------
def create_debt(actor_id, debtor_id, amount, reason, recorded_at=None) -> Debt:
    value = parse_amount(amount)
    text_reason = clean_text(reason)
    if not text_reason:
        raise ValidationError("reason", "must not be empty")
    when = parse_timestamp(recorded_at, "date_recorded")
    with transaction("create_debt"):
        debtor = _require_debtor(debtor_id)
        debt = Debt(
            debtor_id=debtor.id,
            amount=value,
            reason=text_reason,
            created_by=_require_actor(actor_id),
        )
        if when is not None:
            debt.date_recorded = when
        db.session.add(debt)
    log.info("debt %s of %s recorded for debtor %s", debt.id, value, debt.debtor_id)
    return debt


def create_payment(actor_id, debtor_id, amount, paid_at=None) -> Payment:
    value = parse_amount(amount)
    when = parse_timestamp(paid_at, "date_paid")
    with transaction("create_payment"):
        debtor = _require_debtor(debtor_id)
        payment = Payment(
            debtor_id=debtor.id,
            amount=value,
            created_by=_require_actor(actor_id),
        )
        if when is not None:
            payment.date_paid = when
        db.session.add(payment)
    log.info("payment %s of %s recorded for debtor %s", payment.id, value, payment.debtor_id)
    return payment


def _check_row_fields(fields: Mapping[str, Any], allowed: tuple) -> None:
    for k in fields:
        if k in ("debtor_id", "created_by"):
            raise ValidationError(k, "cannot be changed")
        if k not in allowed:
            raise ValidationError(k, "unknown field")


def _required_timestamp(fields: Mapping[str, Any], name: str) -> datetime:
    when = parse_timestamp(fields.get(name), name)
    if when is None:
        raise ValidationError(name, "must not be empty")
    return when


def update_debt(debt_id, fields: Mapping[str, Any]) -> Debt:
    """Правка суммы, причины или даты долга; должник и автор не меняются."""
    _check_row_fields(fields, DEBT_FIELDS)
    changes: dict[str, Any] = {}
    if "amount" in fields:
        changes["amount"] = parse_amount(fields["amount"])
    if "reason" in fields:
        changes["reason"] = _required_text(fields, "reason")
    if "date_recorded" in fields:
        changes["date_recorded"] = _required_timestamp(fields, "date_recorded")
    with transaction("update_debt"):
        debt = db.session.get(Debt, clean_text(debt_id))
        if debt is None:
            raise NotFound("debt", debt_id)
        for name, value in changes.items():
            setattr(debt, name, value)
    log.info("debt %s updated: %s", debt.id, ", ".join(changes) or "no changes")
    return debt


def update_payment(payment_id, fields: Mapping[str, Any]) -> Payment:
    _check_row_fields(fields, PAYMENT_FIELDS)
    changes: dict[str, Any] = {}
    if "amount" in fields:
        changes["amount"] = parse_amount(fields["amount"])
    if "date_paid" in fields:
        changes["date_paid"] = _required_timestamp(fields, "date_paid")
    with transaction("update_payment"):
        payment = db.session.get(Payment, clean_text(payment_id))
        if payment is None:
            raise NotFound("payment", payment_id)
        for name, value in changes.items():
            setattr(payment, name, value)
    log.info("payment %s updated: %s", payment.id, ", ".join(changes) or "no changes")
    return payment


def _delete_row(model, row_id, operation: str, resource: str) -> None:
    with transaction(operation):
        row = db.session.get(model, clean_text(row_id))
        if row is None:
            raise NotFound(resource, row_id)
        db.session.delete(row)
    log.info("%s %s deleted", resource, row_id)


def delete_debt(debt_id) -> None:
    _delete_row(Debt, debt_id, "delete_debt", "debt")


def delete_payment(payment_id) -> None:
    _delete_row(Payment, payment_id, "delete_payment", "payment")


def debts_for(debtor_id) -> list[Debt]:
    with reading("debts_for"):
        stmt = (
            select(Debt)
            .where(Debt.debtor_id == clean_text(debtor_id))
            .order_by(Debt.date_recorded.desc(), Debt.created_at.desc(), Debt.id)
        )
        return list(db.session.scalars(stmt))


def payments_for(debtor_id) -> list[Payment]:
    with reading("payments_for"):
        stmt = (
            select(Payment)
            .where(Payment.debtor_id == clean_text(debtor_id))
            .order_by(Payment.date_paid.desc(), Payment.created_at.desc(), Payment.id)
        )
        return list(db.session.scalars(stmt))

