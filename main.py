import inspect
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from openai import AsyncOpenAI

from controllers.analysis_controller import AnalysisContext, AnalysisController
from dal.storage_slot_dal import StorageSlotDAL
from routes.analysis_route import router as analysis_router
from services.history_store import HistoryStore
from services.openai.diagnosis_client import DEFAULT_MODEL, DiagnosisClient
from utils.database_init import AsyncDatabaseInitializer
from utils.languages import DEFAULT_LANGUAGE, normalize_language

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the SQLite database (kept across restarts, at DATABASE_DIR/app.db)
      - the history, hydrated once before the first request
      - the OpenAI async client and the analysis controller
    and attach them to `app.state`.
    """
    db_initializer = AsyncDatabaseInitializer()
    await db_initializer.ensure_database()
    app.state.db_initializer = db_initializer

    history_store = HistoryStore(StorageSlotDAL(db_initializer))
    history = await history_store.load()

    openai_api_key = os.getenv("OPENAI_API_KEY")
    if not openai_api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is not set")

    try:
        openai_client = AsyncOpenAI(
            timeout=float(os.getenv("DIAGNOSIS_TIMEOUT_SECONDS", "60")),
            max_retries=0,
        )
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc

    app.state.openai_client = openai_client
    context = AnalysisContext(
        display_language=normalize_language(os.getenv("DEFAULT_LANGUAGE", DEFAULT_LANGUAGE)),
        history=history,
    )
    diagnosis_client = DiagnosisClient(openai_client, model=os.getenv("OPENAI_MODEL", DEFAULT_MODEL))
    app.state.analysis_controller = AnalysisController(diagnosis_client, history_store, context)
    LOGGER.info("Analysis service ready with %s stored analyses", len(history))

    try:
        yield
    finally:
        # Gracefully close the OpenAI client if it exposes a close/aclose method.
        client = getattr(app.state, "openai_client", None)
        if client is not None:
            aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
            if aclose is not None:
                try:
                    if inspect.iscoroutinefunction(aclose):
                        await aclose()
                    else:
                        result = aclose()
                        if inspect.isawaitable(result):
                            await result
                except Exception as exc:
                    LOGGER.warning("Error while closing the OpenAI client: %s", exc)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """
        Serve the frontend index page from the public directory.
        """
        index_path = PUBLIC_DIR / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return FileResponse(index_path)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that verifies the controller and OpenAI client presence.
        """
        has_controller = getattr(request.app.state, "analysis_controller", None) is not None
        has_openai = getattr(request.app.state, "openai_client", None) is not None
        return {"ok": True, "controller_ready": has_controller, "openai_available": has_openai}

    app.include_router(analysis_router)

    return app


app = create_app()
