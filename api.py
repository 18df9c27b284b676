import logging
import os
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Body, Depends, Path, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from audiobook import Audiobook, DEFAULT_STATUS
from config import settings
from library import AudiobookLibrary

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

NOT_FOUND = "Audiobook not found"
# SQLite INTEGER is a signed 64-bit value.
MAX_ROW_ID = 2**63 - 1


# --- Models ---
def _title_as_text(value):
    # A bare number such as 1984 is a valid title; zero counts as missing.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value) if value else None
    return value


class AudiobookModel(BaseModel):
    id: int
    title: str
    author: str | None = None
    narrator: str | None = None
    duration: str | None = None
    genre: str | None = None
    description: str | None = None
    cover_url: str | None = None
    goodreads_url: str | None = None
    rating: float | None = None
    date_added: str | None = None
    date_started_listening: str | None = None
    date_end_listened: str | None = None
    notes: str | None = None
    status: str | None = None


class ListenedAudiobookModel(AudiobookModel):
    number: int


class AudiobookCreateModel(BaseModel):
    """Fields accepted on create. Anything else in the body is ignored."""
    title: str | None = Field(default=None, description="Required, must be non-empty")
    author: str | None = Field(default=None, description="Falls back to the Open Library author")
    narrator: str | None = None
    duration: str | None = Field(default=None, description="Free-form, e.g. '8h 30m'")
    genre: str | None = None
    description: str | None = Field(default=None, description="Falls back to the Open Library first sentence")
    date_started_listening: str | None = None
    date_end_listened: str | None = None
    notes: str | None = None
    status: str | None = Field(default=DEFAULT_STATUS, description="to_listen | listening | completed")

    _number_title = field_validator("title", mode="before")(_title_as_text)


class AudiobookUpdateModel(BaseModel):
    """Full replacement of the mutable fields; omitted fields are cleared."""
    title: str | None = None
    author: str | None = None
    narrator: str | None = None
    duration: str | None = None
    genre: str | None = None
    description: str | None = None
    date_started_listening: str | None = None
    date_end_listened: str | None = None
    notes: str | None = None
    status: str | None = None
    rating: float | None = None

    _number_title = field_validator("title", mode="before")(_title_as_text)

    @field_validator("rating", mode="before")
    @classmethod
    def _blank_rating_is_none(cls, value):
        # The client form sends "" for "No Rating". Range is not checked.
        if isinstance(value, str) and not value.strip():
            return None
        return value


class StatsModel(BaseModel):
    total: int
    completed: int
    listening: int
    to_listen: int


class HealthModel(BaseModel):
    status: str
    db: bool
    timestamp: str


# --- Application ---
def get_library(request: Request) -> AudiobookLibrary:
    """Dependency returning the store built at startup."""
    return request.app.state.library


def create_app(library: Optional[AudiobookLibrary] = None, static_dir: Optional[str] = None) -> FastAPI:
    """Build the FastAPI app. Pass ``library`` to reuse an existing store (tests)."""
    static_dir = static_dir or settings.static_dir

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.library is None
        if owned:
            app.state.library = AudiobookLibrary()
        try:
            yield
        finally:
            if owned:
                app.state.library.close()
                app.state.library = None

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.library = library

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)
    app.include_router(_build_routes())
    _mount_client(app, static_dir)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        # A path id that is not an integer cannot name an existing audiobook.
        if any(err.get("loc", ("",))[0] == "path" for err in errors):
            return JSONResponse(status_code=404, content={"error": NOT_FOUND})
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = first.get("msg", "Invalid request")
        return JSONResponse(status_code=400, content={"error": f"{field}: {message}" if field else message})

    @app.exception_handler(sqlite3.Error)
    async def store_error(request: Request, exc: sqlite3.Error):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc)})


def _build_routes():
    router = APIRouter(prefix="/api")

    @router.get("/health", response_model=HealthModel)
    def health(library: AudiobookLibrary = Depends(get_library)):
        """Lightweight liveness probe with a quick database check."""
        try:
            db_ok = library.ping()
        except sqlite3.Error:
            db_ok = False
        return HealthModel(
            status="healthy",
            db=db_ok,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    @router.get("/audiobooks", response_model=List[AudiobookModel])
    def list_audiobooks(library: AudiobookLibrary = Depends(get_library)):
        """All audiobooks, newest added first."""
        return [b.to_dict() for b in library.list_audiobooks()]

    # Only PUT and DELETE take an id, so this GET never collides with them.
    @router.get("/audiobooks/listened", response_model=List[ListenedAudiobookModel])
    def list_listened(library: AudiobookLibrary = Depends(get_library)):
        """Completed audiobooks ordered by start date and numbered from 1."""
        return library.list_listened()

    @router.post("/audiobooks", response_model=AudiobookModel)
    def create_audiobook(
        payload: Optional[AudiobookCreateModel] = Body(default=None),
        library: AudiobookLibrary = Depends(get_library),
    ):
        """Add an audiobook, filling author/description/cover from Open Library."""
        payload = payload or AudiobookCreateModel()
        if not payload.title:
            raise HTTPException(status_code=400, detail="Title is required")
        book = Audiobook(**payload.model_dump())
        try:
            created = library.add_audiobook(book)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return created.to_dict()

    @router.put("/audiobooks/{audiobook_id}", response_model=AudiobookModel)
    def update_audiobook(
        audiobook_id: int = Path(..., ge=-MAX_ROW_ID - 1, le=MAX_ROW_ID),
        payload: Optional[AudiobookUpdateModel] = Body(default=None),
        library: AudiobookLibrary = Depends(get_library),
    ):
        """Replace every editable field of an audiobook."""
        payload = payload or AudiobookUpdateModel()
        if not library.update_audiobook(audiobook_id, Audiobook(**payload.model_dump())):
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        book = library.get_audiobook(audiobook_id)
        if book is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return book.to_dict()

    @router.delete("/audiobooks/{audiobook_id}")
    def delete_audiobook(
        audiobook_id: int = Path(..., ge=-MAX_ROW_ID - 1, le=MAX_ROW_ID),
        library: AudiobookLibrary = Depends(get_library),
    ):
        """Delete an audiobook by id."""
        if not library.delete_audiobook(audiobook_id):
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        return {"message": "Audiobook deleted successfully"}

    @router.get("/stats", response_model=StatsModel)
    def get_stats(library: AudiobookLibrary = Depends(get_library)):
        """Total count plus one count per status."""
        return StatsModel(**library.get_statistics())

    return router


def _mount_client(app: FastAPI, static_dir: str) -> None:
    """Serve the client application and fall back to its entry page."""
    index_file = os.path.join(static_dir, "index.html")
    if os.path.isdir(static_dir):
        app.mount("/static", StaticFiles(directory=static_dir), name="static")
    else:
        logger.warning("Static directory %s not found; client application disabled", static_dir)

    @app.get("/{full_path:path}", include_in_schema=False)
    def spa_fallback(full_path: str):
        if not os.path.isfile(index_file):
            raise HTTPException(status_code=404, detail="Not Found")
        return FileResponse(index_file)


app = create_app()
