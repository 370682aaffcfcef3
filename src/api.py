"""
HTTP surface for the warehouse wizard.

Stored-configuration endpoints answer with ``{"message": ...}`` on
success and ``{"error": ...}`` on storage failure. The chat endpoints
drive a single in-process session, matching the one-user scope of the
wizard.
"""

import asyncio
import io
import logging
from dataclasses import asdict
from typing import Any, Callable, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field, ValidationError

from src.agents.dialogue_service import DialogueService, OpenAIDialogueService
from src.config import settings
from src.conversation.driver import ConversationDriver
from src.conversation.events import CompletionChannel, CompletionEvent
from src.errors import ExportError, ExportNotFoundError, PersistenceError, SessionCompletedError
from src.schemas.attribute_schema import AttributeRecord
from src.tools.config_store import NO_CONFIGURATION_MESSAGE, JsonConfigStore
from src.tools.spreadsheet_export import XLSX_MEDIA_TYPE, SpreadsheetExporter
from src.tools.visualization import VisualizationPanel, VisualizationSummary

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)


class ChatResponse(BaseModel):
    reply: str
    record: dict[str, Any]
    isComplete: bool
    state: str
    warning: Optional[str] = None
    persistenceError: Optional[str] = None


class ExportRequest(BaseModel):
    record: Optional[dict[str, Any]] = None


class WizardApp:
    """Holds the single session and its collaborators for the API.

    Each session gets its own completion channel. On reset the panel and
    the exporter are detached from the old channel, so a turn that is
    still running on the old driver cannot complete into the new session.
    """

    def __init__(
        self,
        dialogue_factory: Callable[[], DialogueService],
        store: JsonConfigStore,
        exporter: SpreadsheetExporter,
    ) -> None:
        self.dialogue_factory = dialogue_factory
        self.store = store
        self.exporter = exporter
        self.panel = VisualizationPanel()
        self.latest_export: Optional[str] = None
        self._export_tasks: set[asyncio.Task] = set()
        self._unsubscribers: list[Callable[[], None]] = []
        self.driver = self._new_driver()

    @property
    def channel(self) -> CompletionChannel:
        return self.driver.channel

    def _new_driver(self) -> ConversationDriver:
        channel = CompletionChannel()
        self._unsubscribers = [
            self.panel.attach(channel),
            channel.subscribe(self._export_on_completion),
        ]
        return ConversationDriver(self.dialogue_factory(), store=self.store, channel=channel)

    def reset(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self.panel.reset()
        self.latest_export = None
        self.driver = self._new_driver()
        logger.info("Chat session reset, new session %s", self.driver.session_id)

    def _export_on_completion(self, event: CompletionEvent) -> None:
        if event.record is None:
            logger.info("Session %s completed without a record; no export", event.session_id)
            return
        task = asyncio.create_task(self._render_export(event.record, event.session_id))
        self._export_tasks.add(task)
        task.add_done_callback(self._export_tasks.discard)

    async def _render_export(self, record: AttributeRecord, session_id: str) -> None:
        try:
            handle = await asyncio.to_thread(self.exporter.render, record)
        except ExportError as exc:
            logger.error("Export for session %s failed: %s", session_id, exc)
            return
        if session_id != self.driver.session_id:
            logger.info("Discarding export %s of superseded session %s", handle, session_id)
            return
        self.latest_export = handle

    async def wait_for_exports(self) -> None:
        """Wait for any background exports to finish."""
        if self._export_tasks:
            await asyncio.gather(*list(self._export_tasks))


def create_app(
    dialogue_factory: Callable[[], DialogueService] = OpenAIDialogueService,
    store: Optional[JsonConfigStore] = None,
    exporter: Optional[SpreadsheetExporter] = None,
) -> FastAPI:
    wizard = WizardApp(
        dialogue_factory,
        store or JsonConfigStore(),
        exporter or SpreadsheetExporter(),
    )
    app = FastAPI(title=settings.app_name)
    app.state.wizard = wizard
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/warehouse-config")
    def get_config():
        try:
            record = wizard.store.load()
        except PersistenceError:
            return JSONResponse(status_code=500, content={"error": "Failed to read configuration"})
        if record is None:
            return {"message": NO_CONFIGURATION_MESSAGE}
        return record.to_document()

    @app.post("/api/warehouse-config")
    def save_config(payload: dict[str, Any]):
        try:
            record = AttributeRecord.from_document(payload)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False))
        try:
            wizard.store.save(record)
        except PersistenceError:
            return JSONResponse(status_code=500, content={"error": "Failed to save configuration"})
        return {"message": "Configuration saved successfully"}

    @app.get("/api/chat")
    def get_chat():
        driver = wizard.driver
        return {
            "sessionId": driver.session_id,
            "messages": [m.model_dump(mode="json") for m in driver.messages],
            "record": driver.record.to_document(),
            "isComplete": driver.is_complete,
            "state": driver.state.value,
        }

    @app.post("/api/chat", response_model=ChatResponse)
    async def post_chat(request: ChatRequest):
        driver = wizard.driver
        try:
            result = await driver.submit(request.message)
        except SessionCompletedError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

        errors_before = len(driver.persistence_errors)
        await driver.wait_for_persistence()
        await wizard.wait_for_exports()
        persistence_error = None
        if len(driver.persistence_errors) > errors_before:
            persistence_error = str(driver.persistence_errors[-1])

        return ChatResponse(
            reply=result.display_text,
            record=result.record.to_document(),
            isComplete=result.is_complete,
            state=result.state.value,
            warning=result.warning,
            persistenceError=persistence_error,
        )

    @app.post("/api/chat/reset")
    def reset_chat():
        wizard.reset()
        return {"sessionId": wizard.driver.session_id, "reply": wizard.driver.messages[0].content}

    @app.get("/api/visualization")
    def get_visualization():
        summary = wizard.panel.latest or VisualizationSummary.from_record(wizard.driver.record)
        return {
            **asdict(summary),
            "completed": wizard.panel.latest is not None,
            "exportHandle": wizard.latest_export,
        }

    @app.post("/api/export")
    def create_export(request: Optional[ExportRequest] = None):
        try:
            if request is not None and request.record is not None:
                record = AttributeRecord.from_document(request.record)
            else:
                record = wizard.store.load()
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False))
        except PersistenceError:
            return JSONResponse(status_code=500, content={"error": "Failed to read configuration"})
        if record is None:
            raise HTTPException(status_code=404, detail=NO_CONFIGURATION_MESSAGE)

        try:
            handle = wizard.exporter.render(record)
        except ExportError:
            return JSONResponse(
                status_code=500,
                content={"error": "Failed to render spreadsheet, please try again"},
            )
        return {"handle": handle, "url": f"/api/export/{handle}"}

    @app.get("/api/export/{handle}")
    def fetch_export(handle: str):
        try:
            data = wizard.exporter.fetch(handle)
        except ExportNotFoundError:
            raise HTTPException(status_code=404, detail="Export not found")
        except ExportError:
            return JSONResponse(
                status_code=500,
                content={"error": "Failed to read spreadsheet, please try again"},
            )
        return StreamingResponse(
            io.BytesIO(data),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{handle}.xlsx"'},
        )

    return app
