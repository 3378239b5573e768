from __future__ import annotations

import json
from dataclasses import asdict
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from jinja2 import Undefined

from rjournal.config.app_config import AppConfig, load_app_config, merged_env
from rjournal.metrics.summary import compute_dashboard, dashboard_payload
from rjournal.models import RESULTS, Trade, TradeFilter, filter_trades, toggle_condition
from rjournal.storage.json_file import LoadResult
from rjournal.storage.rest_store import (
    RestStoreConfig,
    SchemaMissingError,
    StoreError,
    StoreNotConfiguredError,
    TradeStore,
)
from rjournal.storage.schema import schema_sql, setup_steps


APP_ROOT = Path(__file__).resolve().parent
TEMPLATES = Jinja2Templates(directory=str(APP_ROOT / "templates"))


app = FastAPI(title="Trade Journal")
app.mount("/static", StaticFiles(directory=str(APP_ROOT / "static")), name="static")


@lru_cache(maxsize=1)
def _cached_config() -> AppConfig:
    return load_app_config()


def get_config() -> AppConfig:
    return _cached_config()


def get_store(config: AppConfig = Depends(get_config)) -> TradeStore:
    return TradeStore(RestStoreConfig.from_env(merged_env(config), config.store))


@app.get("/", response_class=HTMLResponse)
def journal_page(
    request: Request,
    store: TradeStore = Depends(get_store),
    config: AppConfig = Depends(get_config),
) -> Response:
    try:
        result = store.fetch_all()
    except StoreError as exc:
        return _store_error_page(request, exc, store)
    data_note = _load_note(result, request.query_params.get("note"))
    context = {
        "page": "journal",
        "trades": result.trades,
        "new_trade": Trade.new(symbol=config.journal.symbols[0]),
        "symbols": config.journal.symbols,
        "models": config.journal.models,
        "preset_conditions": config.journal.conditions,
        "results": RESULTS,
        "data_note": data_note,
        "data_note_class": _note_class(data_note),
    }
    return TEMPLATES.TemplateResponse(request, "journal.html", context)


@app.post("/trades")
async def save_trade(request: Request, store: TradeStore = Depends(get_store)) -> Response:
    form = await request.form()
    try:
        trade = trade_from_form(form)
    except ValueError as exc:
        return _redirect_with_note(str(exc))
    try:
        store.upsert(trade)
    except StoreError as exc:
        return _store_error_redirect(request, exc, store)
    return RedirectResponse("/", status_code=303)


@app.post("/trades/{trade_id}/conditions")
async def toggle_trade_condition(
    request: Request, trade_id: str, store: TradeStore = Depends(get_store)
) -> Response:
    form = await request.form()
    tag = str(form.get("tag") or "")
    try:
        trade = _find_trade(store, trade_id)
        store.upsert(trade.with_changes(conditions=toggle_condition(trade.conditions, tag)))
    except StoreError as exc:
        return _store_error_redirect(request, exc, store)
    return RedirectResponse("/", status_code=303)


@app.post("/trades/{trade_id}/delete")
def delete_trade(request: Request, trade_id: str, store: TradeStore = Depends(get_store)) -> Response:
    try:
        store.delete(trade_id)
    except StoreError as exc:
        return _store_error_redirect(request, exc, store)
    return RedirectResponse("/", status_code=303)


@app.get("/analytics", response_class=HTMLResponse)
def analytics_page(
    request: Request,
    store: TradeStore = Depends(get_store),
    config: AppConfig = Depends(get_config),
) -> Response:
    try:
        result = store.fetch_all()
    except StoreError as exc:
        return _store_error_page(request, exc, store)
    filters = TradeFilter.from_params(request.query_params)
    filtered = filter_trades(result.trades, filters)
    data_note = _load_note(result, None)
    context = {
        "page": "analytics",
        "filters": filters,
        "symbols": _options(config.journal.symbols, (trade.symbol for trade in result.trades)),
        "models": _options(config.journal.models, (trade.model for trade in result.trades)),
        "dashboard": compute_dashboard(filtered),
        "data_note": data_note,
        "data_note_class": _note_class(data_note),
    }
    return TEMPLATES.TemplateResponse(request, "analytics.html", context)


@app.get("/api/trades")
def trades_api(store: TradeStore = Depends(get_store)) -> list[dict[str, Any]]:
    result = _fetch_or_http_error(store)
    return [trade.to_record() for trade in result.trades]


@app.get("/api/analytics")
def analytics_api(request: Request, store: TradeStore = Depends(get_store)) -> dict[str, Any]:
    result = _fetch_or_http_error(store)
    filters = TradeFilter.from_params(request.query_params)
    payload = dashboard_payload(compute_dashboard(filter_trades(result.trades, filters)))
    payload["filters"] = asdict(filters)
    payload["skipped"] = result.skipped
    return payload


def trade_from_form(form: Mapping[str, Any]) -> Trade:
    record = {key: form.get(key) for key in form.keys() if key not in ("condition", "new_condition")}
    tags: list[str] = []
    if hasattr(form, "getlist"):
        tags.extend(str(tag) for tag in form.getlist("condition") if tag)
    elif form.get("condition"):
        tags.append(str(form.get("condition")))
    # One tag per field; commas belong to the tag name.
    new_tag = str(form.get("new_condition") or "").strip()
    if new_tag:
        tags.append(new_tag)
    record["conditions"] = tags
    return Trade.from_record(record)


def _find_trade(store: TradeStore, trade_id: str) -> Trade:
    result = store.fetch_all()
    trade = next((item for item in result.trades if item.id == trade_id), None)
    if trade is None:
        raise HTTPException(status_code=404, detail="Trade not found.")
    return trade


def _fetch_or_http_error(store: TradeStore) -> LoadResult:
    try:
        return store.fetch_all()
    except (StoreNotConfiguredError, SchemaMissingError) as exc:
        raise HTTPException(status_code=503, detail=exc.message) from exc
    except StoreError as exc:
        raise HTTPException(status_code=502, detail=exc.message) from exc


def _store_error_page(request: Request, exc: StoreError, store: TradeStore) -> Response:
    if isinstance(exc, StoreNotConfiguredError):
        return TEMPLATES.TemplateResponse(request, "setup.html", {"page": "setup"}, status_code=503)
    if isinstance(exc, SchemaMissingError):
        table = store.config.table
        context = {
            "page": "schema",
            "table": table,
            "sql": schema_sql(table),
            "steps": setup_steps(table),
            "retry_url": str(request.url),
        }
        return TEMPLATES.TemplateResponse(request, "schema.html", context, status_code=503)
    context = {
        "page": "error",
        "data_note": f"Trade store request failed: {exc.message}",
        "data_note_class": "notice-error",
    }
    return TEMPLATES.TemplateResponse(request, "error.html", context, status_code=502)


def _store_error_redirect(request: Request, exc: StoreError, store: TradeStore) -> Response:
    if isinstance(exc, (StoreNotConfiguredError, SchemaMissingError)):
        return _store_error_page(request, exc, store)
    return _redirect_with_note(f"Save failed: {exc.message}")


def _redirect_with_note(note: str) -> RedirectResponse:
    return RedirectResponse(f"/?{urlencode({'note': note})}", status_code=303)


def _load_note(result: LoadResult, extra: str | None) -> str | None:
    notes = []
    if extra:
        notes.append(extra)
    if result.skipped:
        notes.append(f"Skipped {result.skipped} malformed trade records.")
    return " ".join(notes) or None


def _note_class(note: str | None) -> str:
    if not note:
        return ""
    if "failed" in note.lower():
        return "notice-error"
    return "notice"


def _options(configured: list[str], seen: Any) -> list[str]:
    options = list(configured)
    for value in seen:
        if value and value not in options:
            options.append(value)
    return options


def r_filter(value: float | None) -> str:
    if value is None or isinstance(value, Undefined):
        return "n/a"
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return "n/a"
    return f"{amount:+.2f}R"


def percent_filter(value: float | None) -> str:
    if value is None or isinstance(value, Undefined):
        return "n/a"
    return f"{float(value):.1f}%"


def number_filter(value: float | None) -> str:
    if value is None or isinstance(value, Undefined):
        return ""
    return f"{float(value):g}"


def json_filter(value: Any) -> str:
    return json.dumps(value, default=str)


TEMPLATES.env.filters.update(
    {
        "r": r_filter,
        "percent": percent_filter,
        "number": number_filter,
        "json": json_filter,
    }
)


def main() -> None:
    import uvicorn

    app_config = load_app_config()
    uvicorn.run(
        "rjournal.web.app:app",
        host=app_config.app.host,
        port=app_config.app.port,
        reload=app_config.app.reload,
    )


if __name__ == "__main__":
    main()
