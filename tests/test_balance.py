from decimal import Decimal
from itertools import permutations

from debtbook import store
from debtbook.balance import Balance, compute_balance, compute_balances, debtors_with_balances


def _debtor(actor, name, phone):
    return store.create_debtor(actor.user_id, {"name": name, "phone_number": phone})


def test_empty_debtor_has_zero_balance(staff):
    d = _debtor(staff, "Ann", "555-0100")
    b = compute_balance(d.id)
    assert b == Balance(Decimal("0.00"), Decimal("0.00"))
    assert b.balance == Decimal("0.00")
    assert compute_balance("unknown-id").as_dict() == {
        "total_debt": Decimal("0.00"), "total_paid": Decimal("0.00"), "balance": Decimal("0.00"),
    }


def test_reference_example(staff):
    d = _debtor(staff, "D", "555-0100")
    store.create_debt(staff.user_id, d.id, "50.00", "loan")
    store.create_debt(staff.user_id, d.id, "25.50", "loan")
    store.create_payment(staff.user_id, d.id, "30.00")
    b = compute_balance(d.id)
    assert b.total_debt == Decimal("75.50")
    assert b.total_paid == Decimal("30.00")
    assert b.balance == Decimal("45.50")


def test_insertion_order_does_not_matter(staff):
    ops = [("debt", "10.10"), ("debt", "0.20"), ("pay", "3.33"), ("pay", "0.07")]
    results = set()
    for i, order in enumerate(permutations(ops)):
        d = _debtor(staff, f"P{i}", f"555-{i:04d}")
        for kind, amount in order:
            if kind == "debt":
                store.create_debt(staff.user_id, d.id, amount, "x")
            else:
                store.create_payment(staff.user_id, d.id, amount)
        results.add(compute_balance(d.id))
    assert results == {Balance(Decimal("10.30"), Decimal("3.40"))}


def test_no_float_drift(staff):
    d = _debtor(staff, "Cents", "555-0100")
    for _ in range(10):
        store.create_debt(staff.user_id, d.id, "0.10", "x")
    for _ in range(3):
        store.create_payment(staff.user_id, d.id, "0.10")
    b = compute_balance(d.id)
    assert b.total_debt == Decimal("1.00")
    assert str(b.balance) == "0.70"


def test_overpayment_goes_negative(staff):
    d = _debtor(staff, "Over", "555-0100")
    store.create_debt(staff.user_id, d.id, "10.00", "x")
    store.create_payment(staff.user_id, d.id, "15.00")
    assert compute_balance(d.id).balance == Decimal("-5.00")


def test_batch_matches_single(staff):
    a = _debtor(staff, "A", "1")
    b = _debtor(staff, "B", "2")
    c = _debtor(staff, "C", "3")
    store.create_debt(staff.user_id, a.id, "12.34", "x")
    store.create_payment(staff.user_id, a.id, "2.34")
    store.create_debt(staff.user_id, b.id, "99.99", "x")

    batch = compute_balances([a.id, b.id, c.id, a.id])
    assert list(batch) == [a.id, b.id, c.id]
    for debtor_id, bal in batch.items():
        assert bal == compute_balance(debtor_id)
    assert compute_balances([]) == {}


def test_listing_joins_grouped_totals(staff):
    zed = _debtor(staff, "Zed", "555-0003")
    amy = _debtor(staff, "amy", "555-0001")
    bob = _debtor(staff, "Bob", "777-0002")
    store.create_debt(staff.user_id, zed.id, "5.00", "x")
    store.create_payment(staff.user_id, bob.id, "1.00")

    rows = debtors_with_balances()
    assert [d.name for d, _ in rows] == ["amy", "Bob", "Zed"]
    by_id = {d.id: b for d, b in rows}
    assert by_id[zed.id].balance == Decimal("5.00")
    assert by_id[amy.id] == Balance()
    assert by_id[bob.id].balance == Decimal("-1.00")

    assert [d.id for d, _ in debtors_with_balances("555")] == [amy.id, zed.id]
