from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Callable, Optional

from balances import BalanceMaintainer
from errors import InvalidArgument, NotFound
from guards import (
    CATEGORY_LABELS,
    LedgerGuard,
    clean_category_name,
    parse_transaction_type,
)
from models import TransactionType
from periods import Period, resolve_period
from schemas import (
    AccountIn,
    AccountOut,
    AccountPatch,
    CategoryIn,
    CategoryOut,
    CategoryPatch,
    CategorySumOut,
    DateRange,
    MonthlyTotalsOut,
    TransactionDetailOut,
    TransactionIn,
    TransactionOut,
    TransactionPatch,
)
from store import EntityKind, EntityStore


logger = logging.getLogger(__name__)

Clock = Callable[[], date]


def _newest_first(txns: list[TransactionOut]) -> list[TransactionOut]:
    return sorted(txns, key=lambda t: (t.date, t.id), reverse=True)


class AccountService:
    def __init__(self, store: EntityStore) -> None:
        self.store = store
        self.guard = LedgerGuard(store)

    def list(self) -> list[AccountOut]:
        return self.store.list(EntityKind.account)

    def get(self, account_id: int) -> AccountOut:
        account = self.store.get(EntityKind.account, account_id)
        if account is None:
            raise NotFound("Account", account_id)
        return account

    def create(self, data: AccountIn) -> AccountOut:
        values = data.model_dump()
        values["name"] = values["name"].strip()
        account = self.store.insert(EntityKind.account, values)
        logger.info(
            f"account_created: id={account.id} initial_balance={account.balance_cents}"
        )
        return account

    def update(self, account_id: int, data: AccountPatch) -> AccountOut:
        changes = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key == "description"
        }
        with self.store.transaction():
            self.get(account_id)
            if not changes:
                return self.get(account_id)
            return self.store.update(EntityKind.account, account_id, changes)

    def delete(self, account_id: int) -> None:
        with self.store.transaction():
            self.get(account_id)
            self.guard.check_account_unreferenced(account_id)
            self.store.delete(EntityKind.account, account_id)
        logger.info(f"account_deleted: id={account_id}")


class CategoryService:
    """CRUD for one of the two category namespaces, picked by transaction type."""

    def __init__(self, store: EntityStore, txn_type: TransactionType) -> None:
        self.store = store
        self.kind = EntityKind.category_for(parse_transaction_type(txn_type))
        self.guard = LedgerGuard(store)

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self.kind]

    def list(self) -> list[CategoryOut]:
        return self.store.list(self.kind)

    def get(self, category_id: int) -> CategoryOut:
        category = self.store.get(self.kind, category_id)
        if category is None:
            raise NotFound(self.label, category_id)
        return category

    def create(self, data: CategoryIn) -> CategoryOut:
        name = clean_category_name(data.name)
        with self.store.transaction():
            self.guard.check_category_name_free(self.kind, name)
            category = self.store.insert(
                self.kind, {"name": name, "description": data.description}
            )
        logger.info(f"category_created: kind={self.kind.value} id={category.id}")
        return category

    def update(self, category_id: int, data: CategoryPatch) -> CategoryOut:
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes:
            if changes["name"] is None:
                del changes["name"]
            else:
                changes["name"] = clean_category_name(changes["name"])
        with self.store.transaction():
            self.get(category_id)
            if "name" in changes:
                self.guard.check_category_name_free(
                    self.kind, changes["name"], exclude_id=category_id
                )
            if not changes:
                return self.get(category_id)
            return self.store.update(self.kind, category_id, changes)

    def delete(self, category_id: int) -> None:
        with self.store.transaction():
            self.get(category_id)
            self.guard.check_category_unreferenced(self.kind, category_id)
            self.store.delete(self.kind, category_id)
        logger.info(f"category_deleted: kind={self.kind.value} id={category_id}")


class CategoryNames:
    """Category names of both namespaces, resolved by (type, id)."""

    def __init__(self, store: EntityStore) -> None:
        self._names: dict[TransactionType, dict[int, str]] = {
            txn_type: {
                c.id: c.name for c in store.list(EntityKind.category_for(txn_type))
            }
            for txn_type in TransactionType
        }

    def resolve(self, txn_type: TransactionType, category_id: int) -> Optional[str]:
        return self._names[txn_type].get(category_id)


class TransactionService:
    def __init__(
        self,
        store: EntityStore,
        *,
        today: Optional[Clock] = None,
        week_start: int = 0,
    ) -> None:
        self.store = store
        self.today = today or date.today
        self.week_start = week_start
        self.guard = LedgerGuard(store)
        self.balances = BalanceMaintainer(store)

    def resolve(
        self, period: Optional[str], custom_range: Optional[DateRange] = None
    ) -> Period:
        return resolve_period(
            period, custom_range, today=self.today(), week_start=self.week_start
        )

    def _with_details(self, txns: list[TransactionOut]) -> list[TransactionDetailOut]:
        accounts = {a.id: a.name for a in self.store.list(EntityKind.account)}
        names = CategoryNames(self.store)
        return [
            TransactionDetailOut(
                **txn.model_dump(),
                account_name=accounts.get(txn.account_id),
                category_name=names.resolve(txn.type, txn.category_id),
            )
            for txn in txns
        ]

    def list(self) -> list[TransactionOut]:
        return _newest_first(self.store.list(EntityKind.transaction))

    def list_with_details(self) -> list[TransactionDetailOut]:
        with self.store.transaction():
            return self._with_details(self.list())

    def get(self, transaction_id: int) -> TransactionOut:
        txn = self.store.get(EntityKind.transaction, transaction_id)
        if txn is None:
            raise NotFound("Transaction", transaction_id)
        return txn

    def get_with_details(self, transaction_id: int) -> TransactionDetailOut:
        with self.store.transaction():
            return self._with_details([self.get(transaction_id)])[0]

    def create(self, data: TransactionIn) -> TransactionOut:
        values = data.model_dump()
        with self.store.transaction():
            self.guard.check_new_transaction(values)
            txn = self.store.insert(EntityKind.transaction, values)
            self.balances.on_create(txn)
        logger.info(
            f"transaction_created: id={txn.id} account_id={txn.account_id} "
            f"type={txn.type.value} amount_cents={txn.amount_cents}"
        )
        return txn

    def update(self, transaction_id: int, data: TransactionPatch) -> TransactionOut:
        with self.store.transaction():
            current = self.get(transaction_id)
            self.guard.check_transaction_patch(current, data)
            self.balances.on_update(current, data)
            changes = data.changes()
            if not changes:
                return current
            txn = self.store.update(EntityKind.transaction, transaction_id, changes)
        logger.info(
            f"transaction_updated: id={transaction_id} fields={sorted(changes)}"
        )
        return txn

    def delete(self, transaction_id: int) -> None:
        with self.store.transaction():
            current = self.get(transaction_id)
            self.balances.on_delete(current)
            self.store.delete(EntityKind.transaction, transaction_id)
        logger.info(f"transaction_deleted: id={transaction_id}")

    def by_account(self, account_id: int) -> list[TransactionDetailOut]:
        with self.store.transaction():
            txns = self.store.list(EntityKind.transaction, account_id=account_id)
            return self._with_details(_newest_first(txns))

    def by_category(
        self, category_id: int, txn_type: object
    ) -> list[TransactionDetailOut]:
        txn_type = parse_transaction_type(txn_type)
        with self.store.transaction():
            txns = self.store.list(
                EntityKind.transaction, category_id=category_id, type=txn_type
            )
            return self._with_details(_newest_first(txns))

    def by_date_range(self, start: date, end: date) -> list[TransactionDetailOut]:
        if start > end:
            raise InvalidArgument("Start date must be before end date")
        return self._in_period(Period("range", start, end))

    def by_period(
        self, period: Optional[str], custom_range: Optional[DateRange] = None
    ) -> list[TransactionDetailOut]:
        return self._in_period(self.resolve(period, custom_range))

    def _in_period(self, period: Period) -> list[TransactionDetailOut]:
        with self.store.transaction():
            txns = [
                t
                for t in self.store.list(EntityKind.transaction)
                if period.contains(t.date)
            ]
            return self._with_details(_newest_first(txns))


class SummaryService:
    def __init__(
        self,
        store: EntityStore,
        *,
        today: Optional[Clock] = None,
        week_start: int = 0,
    ) -> None:
        self.store = store
        self.transactions = TransactionService(
            store, today=today, week_start=week_start
        )

    def total_balance(self) -> int:
        return sum(a.balance_cents for a in self.store.list(EntityKind.account))

    def _matching(
        self, txn_type: TransactionType, period: Period
    ) -> list[TransactionOut]:
        return [
            t
            for t in self.store.list(EntityKind.transaction, type=txn_type)
            if period.contains(t.date)
        ]

    def _sum(
        self,
        txn_type: TransactionType,
        period: Optional[str],
        custom_range: Optional[DateRange],
    ) -> int:
        resolved = self.transactions.resolve(period, custom_range)
        return sum(t.amount_cents for t in self._matching(txn_type, resolved))

    def income_sum(
        self, period: Optional[str], custom_range: Optional[DateRange] = None
    ) -> int:
        return self._sum(TransactionType.income, period, custom_range)

    def expense_sum(
        self, period: Optional[str], custom_range: Optional[DateRange] = None
    ) -> int:
        return self._sum(TransactionType.expense, period, custom_range)

    def _by_category(
        self,
        txn_type: TransactionType,
        period: Optional[str],
        custom_range: Optional[DateRange],
    ) -> list[CategorySumOut]:
        resolved = self.transactions.resolve(period, custom_range)
        with self.store.transaction():
            txns = self._matching(txn_type, resolved)
            names = CategoryNames(self.store)

        totals: dict[int, int] = defaultdict(int)
        for txn in txns:
            totals[txn.category_id] += txn.amount_cents

        rows = []
        for category_id, total in totals.items():
            name = names.resolve(txn_type, category_id)
            if name is None or total <= 0:
                continue
            rows.append(
                CategorySumOut(
                    category_id=category_id, category_name=name, sum_cents=total
                )
            )
        rows.sort(key=lambda r: (-r.sum_cents, r.category_name, r.category_id))
        return rows

    def income_by_category(
        self, period: Optional[str], custom_range: Optional[DateRange] = None
    ) -> list[CategorySumOut]:
        return self._by_category(TransactionType.income, period, custom_range)

    def expense_by_category(
        self, period: Optional[str], custom_range: Optional[DateRange] = None
    ) -> list[CategorySumOut]:
        return self._by_category(TransactionType.expense, period, custom_range)

    def monthly_data(self, year: int) -> list[MonthlyTotalsOut]:
        if not 1 <= year <= 9999:
            raise InvalidArgument(f"Invalid year: {year}")

        income: dict[int, int] = defaultdict(int)
        expense: dict[int, int] = defaultdict(int)
        for txn in self.store.list(EntityKind.transaction):
            if txn.date.year != year:
                continue
            if txn.type == TransactionType.income:
                income[txn.date.month] += txn.amount_cents
            else:
                expense[txn.date.month] += txn.amount_cents

        return [
            MonthlyTotalsOut(
                month=month,
                income_cents=income.get(month, 0),
                expense_cents=expense.get(month, 0),
            )
            for month in range(1, 13)
        ]
