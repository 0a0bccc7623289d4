# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, request, jsonify

from ... import ledger
from ...security import with_caller

bp = Blueprint("ledger", __name__)


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ------------ должники --------------------------------------------------------
@bp.get("/debtors")
@with_caller
def list_debtors(caller):
    q = (request.args.get("q") or "").strip() or None
    return jsonify({"items": ledger.list_debtors(caller, q)})


@bp.get("/debtors/outstanding")
@with_caller
def list_outstanding(caller):
    return jsonify({"items": ledger.list_outstanding(caller)})


@bp.get("/debtors/search")
@with_caller
def search(caller):
    found = ledger.search_debtor(caller, request.args.get("q"))
    if found is None:
        return jsonify({"found": False}), 404
    return jsonify({"found": True, "debtor": found})


@bp.get("/debtors/<debtor_id>")
@with_caller
def get_debtor(caller, debtor_id: str):
    return jsonify(ledger.get_debtor(caller, debtor_id))


@bp.post("/debtors")
@with_caller
def register_debtor(caller):
    return jsonify(ledger.register_debtor(caller, _payload())), 201


@bp.patch("/debtors/<debtor_id>")
@with_caller
def update_debtor(caller, debtor_id: str):
    return jsonify(ledger.update_debtor(caller, debtor_id, _payload()))


@bp.delete("/debtors/<debtor_id>")
@with_caller
def delete_debtor(caller, debtor_id: str):
    removed = ledger.delete_debtor(caller, debtor_id)
    return jsonify({"ok": True, "removed": removed})


# ------------ долги и платежи -------------------------------------------------
@bp.post("/debtors/<debtor_id>/debts")
@with_caller
def record_debt(caller, debtor_id: str):
    data = _payload()
    debt = ledger.record_debt(
        caller, debtor_id, data.get("amount"), data.get("reason"), data.get("date_recorded"),
    )
    return jsonify(debt), 201


@bp.post("/debtors/<debtor_id>/payments")
@with_caller
def record_payment(caller, debtor_id: str):
    data = _payload()
    result = ledger.record_payment(caller, debtor_id, data.get("amount"), data.get("date_paid"))
    return jsonify(result.as_dict()), 201


@bp.patch("/debts/<debt_id>")
@with_caller
def update_debt(caller, debt_id: str):
    return jsonify(ledger.update_debt(caller, debt_id, _payload()))


@bp.patch("/payments/<payment_id>")
@with_caller
def update_payment(caller, payment_id: str):
    return jsonify(ledger.update_payment(caller, payment_id, _payload()))


@bp.delete("/debts/<debt_id>")
@with_caller
def delete_debt(caller, debt_id: str):
    ledger.delete_debt(caller, debt_id)
    return jsonify({"ok": True})


@bp.delete("/payments/<payment_id>")
@with_caller
def delete_payment(caller, payment_id: str):
    ledger.delete_payment(caller, payment_id)
    return jsonify({"ok": True})
