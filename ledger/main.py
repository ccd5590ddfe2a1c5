import asyncio
import csv
from contextlib import asynccontextmanager, suppress
from io import StringIO
from pathlib import Path

from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from .analytics import sorted_history, summarize
from .assistant import (
    AssistantUnavailableError,
    TransactionAssistant,
    draft_to_transaction,
)
from .db import init_db
from .logging_setup import configure_logging, get_logger
from .logic import build_transaction
from .settings import Settings, get_settings
from .store import TransactionStore, View, open_entry, switch_view

logger = get_logger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

NO_RESULT_MESSAGE = "Could not understand the transaction. Try: 'Lunch $15 at Subway'"
UNAVAILABLE_MESSAGE = "AI Service unavailable. Check API Key."


def _serialize_summary(summary: dict) -> dict:
    return {
        "income": str(summary["income"]),
        "expense": str(summary["expense"]),
        "balance": str(summary["balance"]),
        "by_category": [
            {
                "category": row.category,
                "total": str(row.total),
                "percentage": row.percentage,
            }
            for row in summary["by_category"]
        ],
        "trend": [
            {"label": point.label, "date": point.date, "amount": str(point.amount)}
            for point in summary["trend"]
        ],
    }


def create_app(
    settings: Settings | None = None,
    *,
    assistant: TransactionAssistant | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    init_db(settings)

    store = TransactionStore(settings.db_path, key=settings.storage_key)
    store.load()
    assistant = assistant or TransactionAssistant(
        settings.gemini_api_key, model_name=settings.gemini_model
    )

    async def _load_insight(app: FastAPI) -> None:
        app.state.insight = await assistant.advise(store.transactions)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = None
        if assistant.configured:
            # Requests are served while the tip is pending.
            task = asyncio.create_task(_load_insight(app))
        yield
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    app = FastAPI(lifespan=lifespan)
    app.state.store = store
    app.state.insight = ""

    def _build_context(request: Request, view: View, *, entry: bool = False) -> dict:
        state = switch_view(store.state, view)
        if entry:
            state = open_entry(state)
        return {
            "request": request,
            "state": state,
            "transactions": sorted_history(state.transactions),
            "summary": summarize(state.transactions, trend_window=settings.trend_window),
            "insight": app.state.insight,
        }

    def _render_partial(request: Request) -> HTMLResponse:
        context = _build_context(request, View.HOME)
        summary_html = templates.get_template("_summary.html").render(**context)
        table_html = templates.get_template("_transactions_table.html").render(**context)
        return HTMLResponse(summary_html + table_html)

    def _after_mutation(request: Request) -> Response:
        if request.headers.get("HX-Request") == "true":
            return _render_partial(request)
        return RedirectResponse(url="/", status_code=303)

    @app.get("/", response_class=HTMLResponse)
    def index(request: Request, view: View = View.HOME, entry: bool = False):
        return templates.TemplateResponse(
            request, "index.html", _build_context(request, view, entry=entry)
        )

    @app.get("/api/transactions")
    def api_transactions():
        return [tx.to_dict() for tx in sorted_history(store.transactions)]

    @app.get("/api/summary")
    def api_summary():
        return _serialize_summary(
            summarize(store.transactions, trend_window=settings.trend_window)
        )

    @app.post("/transactions", response_class=HTMLResponse)
    def create_transaction(
        request: Request,
        date: str = Form(...),
        type: str = Form(...),
        amount: str = Form(...),
        category: str = Form(...),
        merchant: str = Form(default=""),
        currency: str = Form(default=""),
        notes: str = Form(default=""),
    ):
        try:
            tx = build_transaction(
                date_str=date,
                type_str=type,
                amount=amount,
                category=category,
                merchant=merchant,
                currency=currency,
                notes=notes,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        store.add(tx)
        logger.info("Added %s transaction %s", tx.type.value, tx.id)
        return _after_mutation(request)

    @app.post("/transactions/parse", response_class=HTMLResponse)
    async def parse_transaction(request: Request, text: str = Form(...)):
        if not text.strip():
            raise HTTPException(status_code=400, detail="text required")
        try:
            draft = await assistant.parse(text)
        except AssistantUnavailableError as exc:
            raise HTTPException(status_code=503, detail=UNAVAILABLE_MESSAGE) from exc
        if draft is None:
            raise HTTPException(status_code=422, detail=NO_RESULT_MESSAGE)

        tx = draft_to_transaction(draft, text)
        store.add(tx)
        logger.info("Added %s transaction %s from free text", tx.type.value, tx.id)
        return _after_mutation(request)

    @app.post("/transactions/{tx_id}/delete", response_class=HTMLResponse)
    def delete_transaction(tx_id: str, request: Request):
        if store.get(tx_id) is None:
            logger.info("Delete of unknown transaction %s ignored", tx_id)
        store.remove(tx_id)
        return _after_mutation(request)

    @app.get("/export.csv")
    def export_csv():
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(
            ["id", "date", "type", "amount", "currency", "category", "merchant", "notes"]
        )
        for tx in sorted_history(store.transactions):
            writer.writerow(
                [
                    tx.id,
                    tx.date,
                    tx.type.value,
                    f"{tx.amount:.2f}",
                    tx.currency,
                    tx.category,
                    tx.merchant,
                    tx.notes,
                ]
            )

        body = "\ufeff" + output.getvalue()
        return Response(
            content=body,
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": 'attachment; filename="ledger.csv"'},
        )

    return app
