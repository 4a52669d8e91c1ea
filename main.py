import logging
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import SessionLocal
from fx_rates import BcvRateService
from periods import Period, local_now, month_key, resolve_period
from scheduler import SchedulerManager
from schemas import MonthQuery, PeriodQuery, TransactionQuery
from services import (
    BudgetService,
    CategoryService,
    DashboardService,
    TransactionFilters,
    TransactionService,
    WalletService,
    transaction_payload,
)


def _load_app_version() -> str:
    try:
        import tomllib
    except Exception:
        return "unknown"
    try:
        with open("pyproject.toml", "rb") as f:
            data = tomllib.load(f)
        return str(data.get("project", {}).get("version", "unknown"))
    except Exception:
        return "unknown"


APP_VERSION = _load_app_version()

app = FastAPI(title="Finanzas", version=APP_VERSION)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


scheduler_manager = SchedulerManager()


@app.on_event("startup")
def startup_event():
    scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


def _query(model, request: Request):
    try:
        return model.model_validate(dict(request.query_params))
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def period_from_query(query: PeriodQuery) -> Period:
    return resolve_period(query.period, query.start, query.end)


def storage_unavailable(what: str) -> HTTPException:
    logging.exception(f"Error loading {what}")
    return HTTPException(
        status_code=503, detail=f"Could not load {what}. Please try again."
    )


@app.get("/api/dashboard")
def api_dashboard(request: Request, db: Session = Depends(get_db)):
    query = _query(TransactionQuery, request)
    period = period_from_query(query)
    try:
        return DashboardService(db).overview(period, query.wallet_id)
    except SQLAlchemyError as exc:
        raise storage_unavailable("dashboard") from exc


@app.get("/api/transactions")
def api_transactions(request: Request, db: Session = Depends(get_db)):
    query = _query(TransactionQuery, request)
    period = period_from_query(query)
    filters = TransactionFilters(
        wallet_id=query.wallet_id, category_id=query.category_id, kind=query.kind
    )
    try:
        items = TransactionService(db).list(period, filters, limit=query.limit)
    except SQLAlchemyError as exc:
        raise storage_unavailable("transactions") from exc

    return {
        "items": [transaction_payload(txn) for txn in items],
        "limit": query.limit,
    }


@app.get("/api/wallets")
def api_wallets(request: Request, db: Session = Depends(get_db)):
    period = period_from_query(_query(PeriodQuery, request))
    try:
        return WalletService(db).summaries(period)
    except SQLAlchemyError as exc:
        raise storage_unavailable("wallets") from exc


@app.get("/api/categories")
def api_categories(request: Request, db: Session = Depends(get_db)):
    period = period_from_query(_query(PeriodQuery, request))
    try:
        return CategoryService(db).overview(period)
    except SQLAlchemyError as exc:
        raise storage_unavailable("categories") from exc


@app.get("/api/budgets")
def api_budgets(request: Request, db: Session = Depends(get_db)):
    params = dict(request.query_params)
    params.setdefault("month", month_key(local_now()))
    try:
        month = MonthQuery.model_validate(params).month
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="Invalid month") from exc
    try:
        return BudgetService(db).progress(month)
    except SQLAlchemyError as exc:
        raise storage_unavailable("budgets") from exc


@app.get("/api/bcv-rate")
def api_bcv_rate():
    quote = BcvRateService().latest()
    if quote is None:
        quote = BcvRateService().refresh()
    if quote is None:
        raise HTTPException(status_code=503, detail="BCV rate unavailable")
    return {
        "currency": "VES",
        "rate": str(quote.rate),
        "fetched_at": quote.fetched_at.isoformat(),
        "age_seconds": int(
            (datetime.now(quote.fetched_at.tzinfo) - quote.fetched_at).total_seconds()
        ),
    }


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
