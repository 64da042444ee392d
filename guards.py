"""Referential-integrity and uniqueness checks run before ledger mutations.

Callers run these inside the same store scope as the write they guard.
"""

import logging
from typing import Optional

from errors import Conflict, InvalidArgument, InvalidType, NotFound
from models import TransactionType
from schemas import CategoryOut, TransactionOut, TransactionPatch
from store import EntityKind, EntityStore


logger = logging.getLogger(__name__)

CATEGORY_LABELS = {
    EntityKind.income_category: "Income category",
    EntityKind.expense_category: "Expense category",
}


def parse_transaction_type(value: object) -> TransactionType:
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(value)
    except ValueError as exc:
        raise InvalidType(value) from exc


def clean_category_name(name: str) -> str:
    clean = name.strip()
    if not clean:
        raise InvalidArgument("Category name cannot be empty")
    return clean


class LedgerGuard:
    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def require_account(self, account_id: int) -> None:
        if self.store.get(EntityKind.account, account_id) is None:
            raise NotFound("Account", account_id)

    def require_category(self, txn_type: object, category_id: int) -> CategoryOut:
        kind = EntityKind.category_for(parse_transaction_type(txn_type))
        category = self.store.get(kind, category_id)
        if category is None:
            raise NotFound(CATEGORY_LABELS[kind], category_id)
        return category

    def check_amount(self, amount_cents: int) -> None:
        if amount_cents <= 0:
            raise InvalidArgument("Amount must be greater than zero")

    def check_new_transaction(self, values: dict[str, object]) -> None:
        parse_transaction_type(values["type"])
        self.check_amount(values["amount_cents"])
        self.require_account(values["account_id"])
        self.require_category(values["type"], values["category_id"])

    def check_transaction_patch(
        self, current: TransactionOut, patch: TransactionPatch
    ) -> None:
        changes = patch.changes()
        if "amount_cents" in changes:
            self.check_amount(changes["amount_cents"])
        if "account_id" in changes:
            self.require_account(changes["account_id"])
        if "type" in changes or "category_id" in changes:
            effective = patch.apply_to(current)
            self.require_category(effective.type, effective.category_id)

    def check_account_unreferenced(self, account_id: int) -> None:
        if self.store.list(EntityKind.transaction, account_id=account_id):
            logger.warning(f"delete_blocked: account_id={account_id}")
            raise Conflict("Cannot delete account with existing transactions")

    def check_category_unreferenced(self, kind: EntityKind, category_id: int) -> None:
        txn_type = (
            TransactionType.income
            if kind == EntityKind.income_category
            else TransactionType.expense
        )
        referencing = self.store.list(
            EntityKind.transaction, category_id=category_id, type=txn_type
        )
        if referencing:
            logger.warning(f"delete_blocked: {kind.value}_id={category_id}")
            raise Conflict("Cannot delete category with existing transactions")

    def check_category_name_free(
        self, kind: EntityKind, name: str, *, exclude_id: Optional[int] = None
    ) -> None:
        wanted = name.strip().casefold()
        for category in self.store.list(kind):
            if category.id != exclude_id and category.name.casefold() == wanted:
                raise Conflict(
                    f'{CATEGORY_LABELS[kind]} with name "{name.strip()}" already exists'
                )
