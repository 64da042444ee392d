"""Keeps ``Account.balance_cents`` equal to its initial balance plus the signed
sum of the transactions that reference it.

Every method must be called inside the store scope that writes the
transaction itself, so the balance change and the write commit together.
"""

import logging

from errors import NotFound
from schemas import AccountOut, TransactionOut, TransactionPatch
from store import EntityKind, EntityStore


logger = logging.getLogger(__name__)


class BalanceMaintainer:
    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def adjust(self, account_id: int, delta_cents: int) -> AccountOut:
        """Add ``delta_cents`` to the account's current balance.

        The balance is re-read under a row lock in the current scope; a
        missing account aborts the scope.
        """
        account = self.store.get(EntityKind.account, account_id, for_update=True)
        if account is None:
            raise NotFound("Account", account_id)
        new_balance = account.balance_cents + delta_cents
        updated = self.store.update(
            EntityKind.account, account_id, {"balance_cents": new_balance}
        )
        logger.info(
            f"balance_adjusted: account_id={account_id} delta={delta_cents} "
            f"balance={new_balance}"
        )
        return updated

    def on_create(self, txn: TransactionOut) -> None:
        self.adjust(txn.account_id, txn.delta_cents)

    def on_delete(self, txn: TransactionOut) -> None:
        self.adjust(txn.account_id, -txn.delta_cents)

    def on_update(self, old: TransactionOut, patch: TransactionPatch) -> None:
        new = patch.apply_to(old)
        if new.account_id != old.account_id:
            self.adjust(old.account_id, -old.delta_cents)
            self.adjust(new.account_id, new.delta_cents)
        elif new.amount_cents != old.amount_cents or new.type != old.type:
            self.adjust(old.account_id, new.delta_cents - old.delta_cents)
