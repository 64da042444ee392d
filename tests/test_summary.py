from datetime import date

import pytest

from errors import InvalidArgument, MissingRange
from models import TransactionType
from schemas import AccountIn, CategoryIn, DateRange, TransactionIn
from services import (
    AccountService,
    CategoryService,
    SummaryService,
    TransactionService,
)
from store import EntityKind, MemoryStore, SQLStore


TODAY = date(2024, 3, 20)


def make_sql_store() -> SQLStore:
    return SQLStore.from_url("sqlite+pysqlite:///:memory:", create_schema=True)


STORES = [
    pytest.param(MemoryStore, id="memory"),
    pytest.param(make_sql_store, id="sql"),
]


def build_ledger(store):
    accounts = AccountService(store)
    checking = accounts.create(
        AccountIn(name="Checking", type="bank", balance_cents=100_000)
    )
    cash = accounts.create(AccountIn(name="Cash", type="cash", balance_cents=5_000))
    income = CategoryService(store, TransactionType.income)
    expenses = CategoryService(store, TransactionType.expense)
    salary = income.create(CategoryIn(name="Salary"))
    freelance = income.create(CategoryIn(name="Freelance"))
    food = expenses.create(CategoryIn(name="Food"))
    rent = expenses.create(CategoryIn(name="Rent"))

    txns = TransactionService(store, today=lambda: TODAY)
    rows = [
        (date(2024, 3, 1), TransactionType.income, salary.id, checking.id, 300_000),
        (date(2024, 3, 31), TransactionType.income, freelance.id, cash.id, 40_000),
        (date(2024, 3, 2), TransactionType.expense, rent.id, checking.id, 120_000),
        (date(2024, 3, 15), TransactionType.expense, food.id, cash.id, 2_500),
        (date(2024, 3, 16), TransactionType.expense, food.id, checking.id, 7_500),
        (date(2024, 2, 29), TransactionType.expense, food.id, checking.id, 1_000),
        (date(2024, 4, 1), TransactionType.income, salary.id, checking.id, 300_000),
    ]
    for day, txn_type, category_id, account_id, amount in rows:
        txns.create(
            TransactionIn(
                amount_cents=amount,
                description=f"{txn_type.value} {day.isoformat()}",
                date=day,
                account_id=account_id,
                type=txn_type,
                category_id=category_id,
            )
        )
    return {"salary": salary, "freelance": freelance, "food": food, "rent": rent}


@pytest.mark.parametrize("factory", STORES)
def test_sums_respect_inclusive_month_bounds(factory) -> None:
    store = factory()
    build_ledger(store)
    summary = SummaryService(store, today=lambda: TODAY)

    assert summary.income_sum("this-month") == 340_000
    assert summary.expense_sum("this-month") == 130_000
    assert summary.expense_sum("last-month") == 1_000
    # "all" ends today, so the 2024-03-31 and 2024-04-01 income is excluded
    assert summary.income_sum("all") == 300_000


@pytest.mark.parametrize("factory", STORES)
def test_total_balance_trusts_account_cache(factory) -> None:
    store = factory()
    build_ledger(store)

    total = SummaryService(store, today=lambda: TODAY).total_balance()

    assert total == 105_000 + 640_000 - 131_000


@pytest.mark.parametrize("factory", STORES)
def test_by_category_orders_by_sum(factory) -> None:
    store = factory()
    cats = build_ledger(store)
    summary = SummaryService(store, today=lambda: TODAY)

    expenses = summary.expense_by_category("this-month")
    income = summary.income_by_category("this-month")

    assert [(r.category_name, r.sum_cents) for r in expenses] == [
        ("Rent", 120_000),
        ("Food", 10_000),
    ]
    assert [r.category_id for r in income] == [cats["salary"].id, cats["freelance"].id]


def test_zero_sum_category_is_excluded() -> None:
    store = MemoryStore()
    account = AccountService(store).create(AccountIn(name="Checking", type="bank"))
    gifts = CategoryService(store, TransactionType.income).create(
        CategoryIn(name="Gifts")
    )
    store.insert(
        EntityKind.transaction,
        {
            "amount_cents": 0,
            "description": "Empty envelope",
            "date": date(2024, 3, 10),
            "account_id": account.id,
            "type": TransactionType.income,
            "category_id": gifts.id,
        },
    )

    summary = SummaryService(store, today=lambda: TODAY)

    assert summary.income_by_category("this-month") == []
    assert summary.income_sum("this-month") == 0


def test_custom_period_needs_range() -> None:
    store = MemoryStore()
    build_ledger(store)
    summary = SummaryService(store, today=lambda: TODAY)

    with pytest.raises(MissingRange):
        summary.income_sum("custom")

    window = DateRange(start_date=date(2024, 3, 15), end_date=date(2024, 3, 16))
    assert summary.expense_sum("custom", window) == 10_000
    assert [r.sum_cents for r in summary.expense_by_category("custom", window)] == [
        10_000
    ]


@pytest.mark.parametrize("factory", STORES)
def test_monthly_data_fills_empty_months(factory) -> None:
    store = factory()
    account = AccountService(store).create(AccountIn(name="Checking", type="bank"))
    salary = CategoryService(store, TransactionType.income).create(
        CategoryIn(name="Salary")
    )
    food = CategoryService(store, TransactionType.expense).create(
        CategoryIn(name="Food")
    )
    txns = TransactionService(store)
    for day, txn_type, category_id, amount in [
        (date(2024, 3, 1), TransactionType.income, salary.id, 2_000),
        (date(2024, 3, 31), TransactionType.income, salary.id, 500),
        (date(2024, 3, 12), TransactionType.expense, food.id, 800),
        (date(2023, 3, 12), TransactionType.expense, food.id, 999),
    ]:
        txns.create(
            TransactionIn(
                amount_cents=amount,
                description="march",
                date=day,
                account_id=account.id,
                type=txn_type,
                category_id=category_id,
            )
        )

    rows = SummaryService(store).monthly_data(2024)

    assert [r.month for r in rows] == list(range(1, 13))
    march = rows[2]
    assert (march.income_cents, march.expense_cents) == (2_500, 800)
    for row in rows:
        if row.month != 3:
            assert (row.income_cents, row.expense_cents) == (0, 0)


def test_monthly_data_rejects_bad_year() -> None:
    with pytest.raises(InvalidArgument):
        SummaryService(MemoryStore()).monthly_data(0)


def test_transaction_listings_with_details() -> None:
    store = MemoryStore()
    cats = build_ledger(store)
    txns = TransactionService(store, today=lambda: TODAY)

    listed = txns.list_with_details()
    assert [t.date for t in listed] == sorted((t.date for t in listed), reverse=True)
    assert {t.account_name for t in listed} == {"Checking", "Cash"}

    by_food = txns.by_category(cats["food"].id, "expense")
    assert [t.category_name for t in by_food] == ["Food"] * 3
    # same id in the income namespace is Salary
    same_id_income = txns.by_category(cats["food"].id, TransactionType.income)
    assert {t.category_name for t in same_id_income} == {"Salary"}

    in_range = txns.by_date_range(date(2024, 3, 31), date(2024, 4, 1))
    assert [t.amount_cents for t in in_range] == [300_000, 40_000]
    with pytest.raises(InvalidArgument):
        txns.by_date_range(date(2024, 4, 1), date(2024, 3, 1))

    last_month = txns.by_period("last-month")
    assert [(t.category_name, t.amount_cents) for t in last_month] == [("Food", 1_000)]

    detail = txns.get_with_details(listed[0].id)
    assert detail.category_name == "Salary"
    assert detail.account_name == "Checking"
