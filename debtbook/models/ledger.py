# -*- coding: utf-8 -*-
from __future__ import annotations

from decimal import Decimal
from .user import _utcnow, _uuid
from ..extensions import db

CENT = Decimal("0.01")


def money(v) -> Decimal:
    """Любое значение суммы -> Decimal с ровно двумя знаками после запятой."""
    if v is None:
        return Decimal("0.00")
    if not isinstance(v, Decimal):
        v = Decimal(str(v))
    return v.quantize(CENT)


class Debtor(db.Model):
    __tablename__ = "debtors"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(180), nullable=False, index=True)
    phone_number = db.Column(db.String(32), nullable=False, index=True)
    guarantor_name = db.Column(db.String(180), nullable=True)
    guarantor_phone = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
    created_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)

    debts = db.relationship(
        "Debt", back_populates="debtor", cascade="all, delete-orphan",
    )
    payments = db.relationship(
        "Payment", back_populates="debtor", cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone_number": self.phone_number,
            "guarantor_name": self.guarantor_name,
            "guarantor_phone": self.guarantor_phone,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "created_by": self.created_by,
        }


class Debt(db.Model):
    __tablename__ = "debts"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    debtor_id = db.Column(
        db.String(36), db.ForeignKey("debtors.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    reason = db.Column(db.Text, nullable=False)
    date_recorded = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    created_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    debtor = db.relationship("Debtor", back_populates="debts")

    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_debts_amount_positive"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "debtor_id": self.debtor_id,
            "amount": money(self.amount),
            "reason": self.reason,
            "date_recorded": self.date_recorded,
            "created_by": self.created_by,
            "created_at": self.created_at,
        }


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    debtor_id = db.Column(
        db.String(36), db.ForeignKey("debtors.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    date_paid = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    created_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    debtor = db.relationship("Debtor", back_populates="payments")

    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "debtor_id": self.debtor_id,
            "amount": money(self.amount),
            "date_paid": self.date_paid,
            "created_by": self.created_by,
            "created_at": self.created_at,
        }
