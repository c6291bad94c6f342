"""RAG router: document upload and question answering."""

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.responses import JSONResponse

from server.models.requests import AskRequest
from server.models.responses import ErrorResponse
from services.rag_pipeline.IngestService import IngestService
from shared.models.errors import RagError

rag_router = APIRouter(prefix="/rag")

_ERRORS = {code: {"model": ErrorResponse} for code in (400, 409, 413, 500)}


def _error_response(request: Request, exc: Exception, fallback: str) -> JSONResponse:
    """Translate a pipeline failure into a {error} JSON response.

    Expected failures carry their own status code; anything else is a 500.
    """
    if isinstance(exc, RagError):
        request.app.state.logging.warning("%s (%d): %s", type(exc).__name__, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
    request.app.state.logging.exception("%s: %s", fallback, exc)
    return JSONResponse(status_code=500, content={"error": str(exc) or fallback})


async def read_upload(file: UploadFile | None, ingest_service: IngestService) -> bytes | None:
    """Read the upload without buffering more than MAX_UPLOAD_BYTES + 1 bytes.

    A declared size over the limit is rejected before reading. Otherwise one
    byte past the limit is enough for do_ingest_upload to reject the file.
    """
    if file is None:
        return None
    if file.size is not None:
        ingest_service.check_upload_size(file.size)
    return await file.read(ingest_service.max_upload_bytes + 1)


@rag_router.post("/upload", tags=["RAG"], responses=_ERRORS)
async def handle_upload(request: Request, file: UploadFile | None = File(default=None)) -> JSONResponse:
    """Index one uploaded document.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        file (UploadFile | None): Multipart field "file".

    Returns:
        JSONResponse: {ok, fileName, chunks} or {error} with a 4xx/5xx status.
    """
    ingest_service = request.app.state.ingest_service
    try:
        data = await read_upload(file, ingest_service)
        result = await ingest_service.do_ingest_upload(data, file.filename if file is not None else None)
    except Exception as exc:
        return _error_response(request, exc, "Upload failed")
    finally:
        if file is not None:
            await file.close()
    return JSONResponse(content=result.model_dump(by_alias=True))


@rag_router.post("/ask", tags=["RAG"], responses=_ERRORS)
async def handle_ask(request: Request, body: AskRequest | None = None) -> JSONResponse:
    """Answer a question from the indexed documents.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (AskRequest | None): question, topK and allowGeneralKnowledge; a
            missing body is treated like one without a question.

    Returns:
        JSONResponse: {answer, sources, usedGeneralKnowledge} or {error}.
    """
    if body is None:
        body = AskRequest()
    query_service = request.app.state.query_service
    try:
        result = await query_service.do_ask(
            question=body.question,
            top_k=body.top_k,
            allow_general_knowledge=body.allow_general_knowledge,
        )
    except Exception as exc:
        return _error_response(request, exc, "Ask failed")
    return JSONResponse(content=result.model_dump(by_alias=True))


@rag_router.get("/status", tags=["RAG"])
async def handle_status(request: Request) -> JSONResponse:
    """Summarise the index: chunk count, indexed file names and vector dimension."""
    status = await request.app.state.index_store.status()
    return JSONResponse(content=status.model_dump())
