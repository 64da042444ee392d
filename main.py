import logging
from datetime import date
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Path, Request, Response
from fastapi.responses import JSONResponse

from config import get_settings
from errors import Conflict, InvalidArgument, NotFound, StoreError
from models import TransactionType
from schemas import (
    AccountIn,
    AccountPatch,
    CategoryIn,
    CategoryPatch,
    PeriodQuery,
    TransactionIn,
    TransactionPatch,
)
from services import (
    AccountService,
    CategoryService,
    SummaryService,
    TransactionService,
)
from store import EntityStore, build_store


settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Household Ledger")


@lru_cache(maxsize=1)
def get_store() -> EntityStore:
    return build_store(get_settings())


def get_today() -> date:
    return get_settings().today()


def get_week_start() -> int:
    return get_settings().week_start


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(NotFound)
def not_found_handler(request: Request, exc: NotFound):
    return _error(404, exc)


@app.exception_handler(Conflict)
def conflict_handler(request: Request, exc: Conflict):
    return _error(409, exc)


@app.exception_handler(InvalidArgument)
def invalid_argument_handler(request: Request, exc: InvalidArgument):
    return _error(400, exc)


@app.exception_handler(StoreError)
def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"store_error: path={request.url.path} error={exc}")
    return _error(500, exc)


def transaction_service(
    store: EntityStore = Depends(get_store),
    today: date = Depends(get_today),
    week_start: int = Depends(get_week_start),
) -> TransactionService:
    return TransactionService(store, today=lambda: today, week_start=week_start)


def summary_service(
    store: EntityStore = Depends(get_store),
    today: date = Depends(get_today),
    week_start: int = Depends(get_week_start),
) -> SummaryService:
    return SummaryService(store, today=lambda: today, week_start=week_start)


# Accounts


@app.get("/api/accounts")
def list_accounts(store: EntityStore = Depends(get_store)):
    return AccountService(store).list()


@app.get("/api/accounts/{account_id}")
def get_account(account_id: int, store: EntityStore = Depends(get_store)):
    return AccountService(store).get(account_id)


@app.post("/api/accounts", status_code=201)
def create_account(data: AccountIn, store: EntityStore = Depends(get_store)):
    return AccountService(store).create(data)


@app.patch("/api/accounts/{account_id}")
def update_account(
    account_id: int, data: AccountPatch, store: EntityStore = Depends(get_store)
):
    return AccountService(store).update(account_id, data)


@app.delete("/api/accounts/{account_id}", status_code=204)
def delete_account(account_id: int, store: EntityStore = Depends(get_store)):
    AccountService(store).delete(account_id)
    return Response(status_code=204)


# Categories, one route set per namespace


def _register_category_routes(prefix: str, txn_type: TransactionType) -> None:
    def service(store: EntityStore = Depends(get_store)) -> CategoryService:
        return CategoryService(store, txn_type)

    @app.get(prefix, name=f"list_{txn_type.value}_categories")
    def list_categories(categories: CategoryService = Depends(service)):
        return categories.list()

    @app.get(prefix + "/{category_id}", name=f"get_{txn_type.value}_category")
    def get_category(category_id: int, categories: CategoryService = Depends(service)):
        return categories.get(category_id)

    @app.post(prefix, status_code=201, name=f"create_{txn_type.value}_category")
    def create_category(data: CategoryIn, categories: CategoryService = Depends(service)):
        return categories.create(data)

    @app.patch(prefix + "/{category_id}", name=f"update_{txn_type.value}_category")
    def update_category(
        category_id: int,
        data: CategoryPatch,
        categories: CategoryService = Depends(service),
    ):
        return categories.update(category_id, data)

    @app.delete(
        prefix + "/{category_id}",
        status_code=204,
        name=f"delete_{txn_type.value}_category",
    )
    def delete_category(category_id: int, categories: CategoryService = Depends(service)):
        categories.delete(category_id)
        return Response(status_code=204)


_register_category_routes("/api/income-categories", TransactionType.income)
_register_category_routes("/api/expense-categories", TransactionType.expense)


# Transactions


@app.get("/api/transactions")
def list_transactions(txns: TransactionService = Depends(transaction_service)):
    return txns.list_with_details()


@app.get("/api/transactions/range")
def transactions_in_range(
    start: date, end: date, txns: TransactionService = Depends(transaction_service)
):
    return txns.by_date_range(start, end)


@app.get("/api/transactions/account/{account_id}")
def transactions_by_account(
    account_id: int, txns: TransactionService = Depends(transaction_service)
):
    return txns.by_account(account_id)


@app.get("/api/transactions/category/{category_id}/{txn_type}")
def transactions_by_category(
    category_id: int,
    txn_type: str,
    txns: TransactionService = Depends(transaction_service),
):
    return txns.by_category(category_id, txn_type)


@app.post("/api/transactions/period")
def transactions_by_period(
    query: PeriodQuery, txns: TransactionService = Depends(transaction_service)
):
    return txns.by_period(query.period, query.custom_range)


@app.get("/api/transactions/{transaction_id}")
def get_transaction(
    transaction_id: int, txns: TransactionService = Depends(transaction_service)
):
    return txns.get_with_details(transaction_id)


@app.post("/api/transactions", status_code=201)
def create_transaction(
    data: TransactionIn, txns: TransactionService = Depends(transaction_service)
):
    return txns.create(data)


@app.patch("/api/transactions/{transaction_id}")
def update_transaction(
    transaction_id: int,
    data: TransactionPatch,
    txns: TransactionService = Depends(transaction_service),
):
    return txns.update(transaction_id, data)


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: int, txns: TransactionService = Depends(transaction_service)
):
    txns.delete(transaction_id)
    return Response(status_code=204)


# Summaries


@app.get("/api/summary/balance")
def summary_balance(summary: SummaryService = Depends(summary_service)):
    return {"total_balance": summary.total_balance()}


@app.post("/api/summary/income")
def summary_income(
    query: PeriodQuery, summary: SummaryService = Depends(summary_service)
):
    return {"income_sum": summary.income_sum(query.period, query.custom_range)}


@app.post("/api/summary/expense")
def summary_expense(
    query: PeriodQuery, summary: SummaryService = Depends(summary_service)
):
    return {"expense_sum": summary.expense_sum(query.period, query.custom_range)}


@app.post("/api/summary/income-by-category")
def summary_income_by_category(
    query: PeriodQuery, summary: SummaryService = Depends(summary_service)
):
    return summary.income_by_category(query.period, query.custom_range)


@app.post("/api/summary/expense-by-category")
def summary_expense_by_category(
    query: PeriodQuery, summary: SummaryService = Depends(summary_service)
):
    return summary.expense_by_category(query.period, query.custom_range)


@app.get("/api/summary/monthly/{year}")
def summary_monthly(
    year: int = Path(...),
    summary: SummaryService = Depends(summary_service),
):
    if not 1970 <= year <= 3000:
        raise HTTPException(status_code=400, detail="Invalid year")
    return summary.monthly_data(year)


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
