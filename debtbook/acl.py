# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

from sqlalchemy import select

from .errors import Forbidden, NotFound, ValidationError
from .extensions import db
from .models.user import RoleAssignment, User
from .store import clean_text, reading, transaction

log = logging.getLogger(__name__)


class Role(str, Enum):
    viewer = "viewer"
    staff = "staff"
    admin = "admin"


ROLE_WEIGHT: Dict[Role, int] = {Role.viewer: 1, Role.staff: 2, Role.admin: 3}


def parse_role(v: Role | str) -> Role:
    return v if isinstance(v, Role) else Role(v)


# — чистые предикаты, без обращений к БД —
def has_role(role: Role | str, required: Role | str) -> bool:
    return ROLE_WEIGHT[parse_role(role)] >= ROLE_WEIGHT[parse_role(required)]


def can_write(role: Role | str) -> bool:
    return has_role(role, Role.staff)


def can_delete(role: Role | str) -> bool:
    return has_role(role, Role.admin)


@dataclass(frozen=True)
class Caller:
    """Кто вызывает операцию: явно передаётся в каждую функцию учёта."""

    user_id: str
    role: Role = Role.viewer


# — роль пользователя —
def role_of(user_id) -> Role:
    """Роль пользователя; если её нет или она не распознана — viewer (минимум прав)."""
    uid = clean_text(user_id)
    if not uid:
        return Role.viewer
    with reading("role_of"):
        raw = db.session.scalar(select(RoleAssignment.role).where(RoleAssignment.user_id == uid))
    if raw is None:
        log.warning("no role for identity %s, falling back to viewer", uid)
        return Role.viewer
    try:
        return parse_role(raw)
    except ValueError:
        log.warning("unknown role %r for identity %s, falling back to viewer", raw, uid)
        return Role.viewer


def caller_for(user_id) -> Caller:
    return Caller(user_id=clean_text(user_id), role=role_of(user_id))


def require_role(caller: Caller, required: Role | str) -> None:
    required = parse_role(required)
    if not has_role(caller.role, required):
        raise Forbidden(required)


def require_write(caller: Caller) -> None:
    require_role(caller, Role.staff)


def require_delete(caller: Caller) -> None:
    require_role(caller, Role.admin)


# — управление пользователями —
def provision_identity(username, full_name=None, phone_number=None) -> User:
    """Новый пользователь и его роль viewer создаются в одной транзакции."""
    name = clean_text(username)
    if not name:
        raise ValidationError("username", "must not be empty")
    with transaction("provision_identity"):
        exists = db.session.scalar(select(User.id).where(User.username == name))
        if exists is not None:
            raise ValidationError("username", "already taken")
        u = User(
            username=name,
            full_name=clean_text(full_name),
            phone_number=clean_text(phone_number) or None,
        )
        u.role = RoleAssignment(role=Role.viewer.value)
        db.session.add(u)
    log.info("identity %s provisioned as viewer", u.id)
    return u


def set_role(caller: Caller, user_id, role) -> User:
    require_delete(caller)
    try:
        new_role = parse_role(clean_text(getattr(role, "value", role)))
    except ValueError:
        raise ValidationError("role", "must be one of viewer, staff, admin")
    with transaction("set_role"):
        u = db.session.get(User, clean_text(user_id))
        if u is None:
            raise NotFound("user", user_id)
        if u.role is None:
            u.role = RoleAssignment(role=new_role.value)
        else:
            u.role.role = new_role.value
    log.info("identity %s role set to %s by %s", u.id, new_role.value, caller.user_id)
    return u


def list_identities(caller: Caller) -> List[dict]:
    require_delete(caller)
    with reading("list_identities"):
        users = db.session.scalars(select(User).order_by(User.username)).all()
        return [u.to_dict() for u in users]

