# tests/conftest.py
import pytest
from flask import g
from flask_login import FlaskLoginClient
from sqlalchemy import func, select

from debtbook import create_app
from debtbook.acl import Caller, Role, provision_identity
from debtbook.config import TestConfig
from debtbook.extensions import db
from debtbook.models import Debt, Payment, User


class LedgerClient(FlaskLoginClient):
    """Каждый запрос заново определяет пользователя.

    Контекст приложения фикстуры app живёт весь тест и переиспользуется
    запросами, поэтому закэшированный Flask-Login пользователь сбрасывается.
    """

    def open(self, *args, **kwargs):
        g.pop("_login_user", None)
        return super().open(*args, **kwargs)


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    app.test_client_class = LedgerClient
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


def _identity(username: str, role: Role) -> Caller:
    u = provision_identity(username, full_name=username.title())
    if role != Role.viewer:
        u.role.role = role.value
        db.session.commit()
    return Caller(user_id=u.id, role=role)


@pytest.fixture()
def admin(app):
    return _identity("admin", Role.admin)


@pytest.fixture()
def staff(app):
    return _identity("staff", Role.staff)


@pytest.fixture()
def viewer(app):
    return _identity("viewer", Role.viewer)


@pytest.fixture()
def client_for(app):
    """Тестовый клиент, залогиненный под указанным пользователем."""
    def make(caller: Caller):
        user = db.session.get(User, caller.user_id)
        return app.test_client(user=user)
    return make


@pytest.fixture()
def row_counts(app):
    """Сколько долгов и платежей осталось у должника в базе."""
    def count(debtor_id):
        debts = db.session.scalar(select(func.count()).select_from(Debt).where(Debt.debtor_id == debtor_id))
        payments = db.session.scalar(select(func.count()).select_from(Payment).where(Payment.debtor_id == debtor_id))
        return {"debts": debts, "payments": payments}
    return count
