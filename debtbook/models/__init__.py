from .user import User, RoleAssignment
from .ledger import Debtor, Debt, Payment, money, CENT

__all__ = ["User", "RoleAssignment", "Debtor", "Debt", "Payment", "money", "CENT"]
