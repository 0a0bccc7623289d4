"""
Актуализация схемы БД (без удаления данных).

Создаёт недостающие таблицы debtors/debts/payments/users/roles, не трогая
существующие данные. С ключом --admin заводит (или повышает) пользователя
с ролью admin — без него в пустой базе некому регистрировать должников.

Запуск:
  python scripts/ensure_schema.py
  python scripts/ensure_schema.py --admin boss
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from sqlalchemy import inspect, select

# Гарантируем, что корень проекта есть в sys.path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from debtbook import create_app  # noqa: E402
from debtbook.extensions import db  # noqa: E402


def _tables() -> set[str]:
    return set(inspect(db.engine).get_table_names())


def _ensure_admin(username: str) -> None:
    from debtbook.acl import Role, provision_identity
    from debtbook.models import User
    from debtbook.models.user import RoleAssignment

    u = db.session.scalar(select(User).where(User.username == username))
    if u is None:
        u = provision_identity(username, full_name=username)
        print(f"[ensure] Создан пользователь {username} ({u.id})")
    if u.role is None:
        u.role = RoleAssignment(role=Role.admin.value)
    else:
        u.role.role = Role.admin.value
    db.session.commit()
    print(f"[ensure] {username}: роль admin")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Создать недостающие таблицы учёта долгов")
    parser.add_argument("--admin", help="логин пользователя, которому выдать роль admin")
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
        print(f"[ensure] SQLALCHEMY_DATABASE_URI = {uri}")

        before = _tables()
        print(f"[ensure] Таблиц до: {len(before)}")

        # Создаём только недостающие таблицы
        db.create_all()

        after = _tables()
        created = sorted(after - before)
        if created:
            print(f"[ensure] Созданы таблицы: {', '.join(created)}")
        else:
            print("[ensure] Новых таблиц не потребовалось.")

        if args.admin:
            _ensure_admin(args.admin.strip())
        print("[ensure] Готово.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
