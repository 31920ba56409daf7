import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import HTMLResponse

from app.ai_feature.generator import GeminiGenerator
from app.api.router import api_router
from app.core.config import settings
from app.core.database import create_engine, create_session_factory

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

INDEX_PAGE = Path(__file__).resolve().parent / "static" / "index.html"


# Build the store handle and generator once, dispose the engine on shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = create_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.generator = GeminiGenerator(settings.GEMINI_API_KEY, settings.GEMINI_MODEL)
    logger.info(f"Using Gemini model {settings.GEMINI_MODEL}")

    yield
    await engine.dispose()


app = FastAPI(title="Synthetic Data SQL Studio", lifespan=lifespan)

# Include the master router containing all our endpoints
app.include_router(api_router)


@app.get("/", response_class=HTMLResponse)
async def root():
    return HTMLResponse(INDEX_PAGE.read_text(encoding="utf-8"))


@app.get("/health")
async def health():
    return {"status": "ok"}
