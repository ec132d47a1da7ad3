"""FastAPI application exposing indexing, search and AI helpers."""

from __future__ import annotations

import asyncio
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterator, List

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from docsynapse import __version__
from docsynapse.config import AppConfig
from docsynapse.errors import (
    BusyError,
    DimensionMismatchError,
    DocSynapseError,
    ExtractionError,
    ProviderError,
    SearchError,
)
from docsynapse.models import IndexEvent, IndexFailed, KeywordConfig, KeywordScanEvent
from docsynapse.services import AppServices

LOGGER = logging.getLogger(__name__)

NDJSON = "application/x-ndjson"

app = FastAPI(title="DocSynapse", version=__version__)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IndexPayload(_Payload):
    directories: List[str]


class SearchPayload(_Payload):
    query: str = ""


class KeywordConfigPayload(_Payload):
    keywords: List[str]
    destination_folder: str = ""


class DirectoryPayload(_Payload):
    path: str


class KeywordScanPayload(_Payload):
    base_directories: List[DirectoryPayload] = Field(default_factory=list)
    directories: List[str] = Field(default_factory=list)
    keyword_configs: List[KeywordConfigPayload]

    def all_directories(self) -> List[str]:
        return [item.path for item in self.base_directories] + self.directories


class ChatTurn(BaseModel):
    role: str
    content: str


class AnalyzePayload(_Payload):
    file_path: str


class ChatPayload(_Payload):
    file_path: str
    message: str
    history: List[ChatTurn] = Field(default_factory=list)


class AskPayload(_Payload):
    question: str
    history: List[ChatTurn] = Field(default_factory=list)


@lru_cache(maxsize=1)
def get_services() -> AppServices:
    """Process-wide services, built once from the environment."""
    return AppServices(AppConfig.from_env(), base_dir=Path.cwd())


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


def _resolve_directories(raw_paths: List[str]) -> List[Path]:
    """Sanitise and resolve user supplied directories."""
    resolved: List[Path] = []
    for raw in raw_paths:
        clean_path = raw.strip().replace("\r", "").replace("\n", "")
        if not clean_path:
            continue
        if "\0" in clean_path:
            raise HTTPException(status_code=400, detail="Invalid path: contains null byte")

        # realpath so a symlinked root is walked once under its real location
        path = Path(os.path.realpath(os.path.expanduser(clean_path)))
        if not path.exists():
            raise HTTPException(status_code=404, detail=f"Path not found: {clean_path}")
        if not path.is_dir():
            raise HTTPException(
                status_code=400, detail=f"Path must be a directory: {clean_path}"
            )
        resolved.append(path)

    if not resolved:
        raise HTTPException(status_code=400, detail="No directory provided")
    return resolved


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _stream_index_events(first: IndexEvent, events: Iterator[IndexEvent]) -> Iterator[str]:
    """Encode index events as NDJSON; run failures become a ``failed`` event."""
    try:
        yield first.to_json() + "\n"
        for event in events:
            yield event.to_json() + "\n"
    except DocSynapseError as exc:
        LOGGER.error("Indexing run failed: %s", exc)
        yield IndexFailed(error=str(exc)).to_json() + "\n"
    finally:
        # Also reached when the client disconnects mid-stream
        events.close()  # type: ignore[attr-defined]


def _stream_scan_events(events: Iterator[KeywordScanEvent]) -> Iterator[str]:
    for event in events:
        yield event.to_json() + "\n"


@app.post("/api/index")
async def start_indexing(
    payload: IndexPayload, services: AppServices = Depends(get_services)
) -> StreamingResponse:
    directories = _resolve_directories(payload.directories)
    try:
        indexer = await asyncio.to_thread(lambda: services.indexer)
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    events = indexer.index(directories)
    try:
        first = await asyncio.to_thread(next, events)
    except BusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    return StreamingResponse(_stream_index_events(first, events), media_type=NDJSON)


@app.get("/api/index/status")
async def index_status(services: AppServices = Depends(get_services)) -> Dict[str, Any]:
    store = services.store
    return {"hasIndex": not store.is_empty(), "count": len(store)}


@app.post("/api/semantic-search")
async def semantic_search(
    payload: SearchPayload, services: AppServices = Depends(get_services)
) -> Any:
    try:
        hits = await asyncio.to_thread(lambda: services.searcher.search(payload.query))
    except DimensionMismatchError as exc:
        LOGGER.error("Search configuration error: %s", exc)
        return _error(500, str(exc))
    except SearchError as exc:
        return _error(400, str(exc))
    except ProviderError as exc:
        LOGGER.error("Search failed: %s", exc)
        return _error(502, str(exc))
    return {"results": [hit.to_dict() for hit in hits]}


@app.post("/api/search")
async def keyword_scan(
    payload: KeywordScanPayload, services: AppServices = Depends(get_services)
) -> StreamingResponse:
    directories = _resolve_directories(payload.all_directories())
    configs = [
        KeywordConfig(keywords=item.keywords, destination_folder=item.destination_folder)
        for item in payload.keyword_configs
    ]
    events = services.keyword_scanner.scan(directories, configs)
    return StreamingResponse(_stream_scan_events(events), media_type=NDJSON)


@app.post("/api/analyze")
async def analyze_file(
    payload: AnalyzePayload, services: AppServices = Depends(get_services)
) -> Any:
    try:
        analysis = await asyncio.to_thread(
            lambda: services.insights.analyze(Path(payload.file_path).expanduser())
        )
    except ExtractionError as exc:
        return _error(400, str(exc))
    except ProviderError as exc:
        LOGGER.error("AI analysis failed: %s", exc)
        return _error(502, str(exc))
    return {"success": True, "analysis": analysis.model_dump()}


@app.post("/api/chat")
async def chat_with_file(
    payload: ChatPayload, services: AppServices = Depends(get_services)
) -> Any:
    history = [turn.model_dump() for turn in payload.history]
    try:
        reply = await asyncio.to_thread(
            lambda: services.insights.chat_with_file(
                Path(payload.file_path).expanduser(), payload.message, history
            )
        )
    except ExtractionError as exc:
        return _error(400, str(exc))
    except ProviderError as exc:
        return _error(502, str(exc))
    return {"success": True, "reply": reply}


@app.post("/api/ask")
async def ask_index(payload: AskPayload, services: AppServices = Depends(get_services)) -> Any:
    history = [turn.model_dump() for turn in payload.history]
    try:
        answer = await asyncio.to_thread(lambda: services.insights.ask(payload.question, history))
    except DimensionMismatchError as exc:
        return _error(500, str(exc))
    except SearchError as exc:
        return _error(400, str(exc))
    except ProviderError as exc:
        return _error(502, str(exc))
    return {"success": True, "reply": answer.reply, "sources": answer.sources}
