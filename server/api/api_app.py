"""FastAPI application entry point for the document Q&A API."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from server.api.routers.RagRouter import rag_router
from server.models.responses import HealthResponse
from services.rag_pipeline.AnswerSynthesizer import AnswerSynthesizer
from services.rag_pipeline.IngestService import IngestService
from services.rag_pipeline.QueryService import QueryService
from services.rag_pipeline.RetrievalEngine import RetrievalEngine
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.extract.TextExtractor import TextExtractor
from shared.clients.index.VectorIndexStore import VectorIndexStore
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build every dependency once, share it through app.state, close it on shutdown."""
    app.state.logging = logging
    app.state.config = HelperConfig(logger=app.state.logging)

    # Initialise clients
    embed_client = EmbedClientManager(helper_config=app.state.config).get_client()
    llm_client = LLMClientManager(helper_config=app.state.config).get_client()
    await embed_client.boot()
    await llm_client.boot()

    try:
        # Health checks
        await embed_client.do_healthcheck()
        await llm_client.do_healthcheck()

        index_store = VectorIndexStore(helper_config=app.state.config)
        app.state.logging.info("Vector index at %s", index_store.get_index_path())

        # Wire up services
        retrieval_engine = RetrievalEngine(helper_config=app.state.config, embed_client=embed_client)
        app.state.index_store = index_store
        app.state.ingest_service = IngestService(
            helper_config=app.state.config,
            embed_client=embed_client,
            index_store=index_store,
            text_extractor=TextExtractor(helper_config=app.state.config),
        )
        app.state.query_service = QueryService(
            helper_config=app.state.config,
            index_store=index_store,
            retrieval_engine=retrieval_engine,
            answer_synthesizer=AnswerSynthesizer(helper_config=app.state.config, llm_client=llm_client),
        )

        app.state.logging.info("Document Q&A API ready.", color="green")
        yield
    finally:
        # Shutdown
        await embed_client.close()
        await llm_client.close()
        app.state.logging.info("Document Q&A API shut down.")


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies in the same {error} shape as pipeline failures."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"error": f"{location}: {message}" if location else message})


def create_app(lifespan_handler=lifespan) -> FastAPI:
    """Assemble the FastAPI app; tests pass lifespan_handler=None and wire app.state themselves."""
    app = FastAPI(
        title="Document Q&A RAG API",
        description="Upload documents and ask questions answered from their content.",
        version=app_version,
        lifespan=lifespan_handler,
    )

    origins = HelperConfig(logger=logging).get_list_val("CORS_ORIGINS", default=["*"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.include_router(rag_router)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=app_version)

    return app


app = create_app()


# Server Start
if __name__ == "__main__":
    # start server
    import uvicorn
    port = int(os.getenv("PORT", "8000"))
    logging.info("Starting Document Q&A API Server v%s on port %d...", app_version, port)
    uvicorn.run(app, host="0.0.0.0", port=port)
