# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, request, jsonify

from ...acl import list_identities, provision_identity, require_delete, set_role
from ...security import with_caller

bp = Blueprint("admin", __name__, url_prefix="/admin")


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@bp.get("/users")
@with_caller
def users(caller):
    return jsonify({"items": list_identities(caller)})


@bp.post("/users")
@with_caller
def create_user(caller):
    require_delete(caller)
    data = _payload()
    u = provision_identity(data.get("username"), data.get("full_name"), data.get("phone_number"))
    return jsonify(u.to_dict()), 201


@bp.put("/users/<user_id>/role")
@with_caller
def change_role(caller, user_id: str):
    data = _payload()
    u = set_role(caller, user_id, data.get("role"))
    return jsonify(u.to_dict())
