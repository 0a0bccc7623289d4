# -*- coding: utf-8 -*-
from functools import wraps
from flask_login import current_user

from .acl import caller_for
from .extensions import login_manager


def with_caller(f):
    """
    Только для залогиненных: роль текущего пользователя читается один раз
    и передаётся в обработчик явным аргументом caller.
    """
    @wraps(f)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        return f(caller_for(current_user.get_id()), *args, **kwargs)
    return wrapper
