"""Document upload and ingestion routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from knowledge_ingest.api.dependencies import get_blob_store, get_ingest_pipeline, get_repository
from knowledge_ingest.core.errors import PersistenceError
from knowledge_ingest.db.repository import DocumentRepository
from knowledge_ingest.ingest.extraction import is_supported
from knowledge_ingest.ingest.pipeline import IngestPipeline
from knowledge_ingest.models.dto import (
    BatchProcessResponse,
    ChunkResponse,
    DeleteChunksResponse,
    DocumentDetailResponse,
    DocumentResponse,
    ProcessRequest,
    ProcessResponse,
)
from knowledge_ingest.storage.blobs import BlobStore
from knowledge_ingest.utils.ids import storage_location

router = APIRouter()


@router.post("", response_model=DocumentResponse, status_code=201, summary="Upload a document")
async def upload_document(
    file: UploadFile = File(...),
    user_id: str = Form(...),
    repository: DocumentRepository = Depends(get_repository),
    blobs: BlobStore = Depends(get_blob_store),
) -> DocumentResponse:
    media_type = file.content_type or "application/octet-stream"
    if not is_supported(media_type):
        raise HTTPException(status_code=415, detail=f"Unsupported media type: {media_type}")
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    name = file.filename or "document"
    location = storage_location(user_id, name)
    blobs.put(location, data)
    try:
        document = repository.create_document(
            user_id=user_id,
            original_name=name,
            storage_path=location,
            file_type=media_type,
            file_size=len(data),
        )
    except PersistenceError:
        blobs.delete(location)
        raise
    return DocumentResponse.from_entity(document)


@router.get("", response_model=list[DocumentResponse], summary="List documents")
async def list_documents(
    user_id: str | None = None,
    repository: DocumentRepository = Depends(get_repository),
) -> list[DocumentResponse]:
    return [DocumentResponse.from_entity(document) for document in repository.list_documents(user_id)]


@router.post("/process", response_model=BatchProcessResponse, summary="Ingest several documents")
def process_documents(
    request: ProcessRequest,
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> BatchProcessResponse:
    # unknown ids fail the whole batch before any reset or run
    for document_id in request.document_ids:
        pipeline.repository.get_document(document_id)
    if request.reset_chunks:
        for document_id in request.document_ids:
            pipeline.repository.delete_chunks(document_id)
    payload = pipeline.ingest_many(request.document_ids)
    return BatchProcessResponse(**payload)


@router.get("/{document_id}", response_model=DocumentDetailResponse, summary="Fetch a document")
async def get_document(
    document_id: str,
    repository: DocumentRepository = Depends(get_repository),
) -> DocumentDetailResponse:
    return DocumentDetailResponse.from_entity(repository.get_document(document_id))


@router.post("/{document_id}/process", response_model=ProcessResponse, summary="Ingest one document")
def process_document(
    document_id: str,
    reset_chunks: bool = False,
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> ProcessResponse:
    if reset_chunks:
        pipeline.repository.delete_chunks(document_id)
    outcome = pipeline.ingest(document_id)
    return ProcessResponse(**outcome.to_dict())


@router.get("/{document_id}/chunks", response_model=list[ChunkResponse], summary="List chunks in index order")
async def list_chunks(
    document_id: str,
    repository: DocumentRepository = Depends(get_repository),
) -> list[ChunkResponse]:
    repository.get_document(document_id)
    return [ChunkResponse.from_entity(chunk) for chunk in repository.list_chunks(document_id)]


@router.delete("/{document_id}/chunks", response_model=DeleteChunksResponse, summary="Delete a document's chunks")
async def delete_chunks(
    document_id: str,
    repository: DocumentRepository = Depends(get_repository),
) -> DeleteChunksResponse:
    repository.get_document(document_id)
    deleted = repository.delete_chunks(document_id)
    return DeleteChunksResponse(status="ok" if deleted else "noop", deleted=deleted)


__all__ = ["router"]
