class LedgerError(Exception):
    """Base class for every failure the ledger reports to its callers."""


class NotFound(LedgerError, ValueError):
    def __init__(self, kind: str, entity_id: object) -> None:
        super().__init__(f"{kind} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class Conflict(LedgerError, ValueError):
    pass


class InvalidArgument(LedgerError, ValueError):
    pass


class MissingRange(InvalidArgument):
    def __init__(self) -> None:
        super().__init__("Custom period requires a start and end date")


class InvalidType(InvalidArgument):
    def __init__(self, value: object) -> None:
        super().__init__(f"Type must be 'income' or 'expense', got {value!r}")
        self.value = value


class StoreError(LedgerError, RuntimeError):
    pass
