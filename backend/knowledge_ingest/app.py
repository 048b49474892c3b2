"""FastAPI application setup for the ingestion service."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from knowledge_ingest.api.dependencies import get_app_settings, get_database, get_ingest_pipeline
from knowledge_ingest.api.routes_admin import router as admin_router
from knowledge_ingest.api.routes_documents import router as documents_router
from knowledge_ingest.core.errors import DocumentNotFound, IngestionError
from knowledge_ingest.core.logging import configure_logging

configure_logging()

app = FastAPI(
    title="Knowledge Ingest",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://127.0.0.1:5173", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(documents_router, prefix="/documents", tags=["documents"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.exception_handler(DocumentNotFound)
async def document_not_found(_request: Request, exc: DocumentNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(IngestionError)
async def ingestion_error(_request: Request, exc: IngestionError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": exc.message})


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    get_app_settings()
    get_database()
    get_ingest_pipeline()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
