import asyncio
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from app.api import chat, system
from app.api.system import VERSION
from app.config import get_settings
from app.core.orchestrator import ChatOrchestrator
from app.db import postgres
from app.db.conversations import PostgresConversationStore

settings = get_settings()

logger.remove()
logger.add(sys.stderr, level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Pain Point Advisor backend...")
    logger.info("Connecting to PostgreSQL at {}:{}", settings.postgres_host, settings.postgres_port)

    for attempt in range(10):
        try:
            await postgres.create_pool()
            break
        except Exception as e:
            if attempt < 9:
                logger.warning("DB connection attempt {} failed: {}. Retrying in 2s...", attempt + 1, e)
                await asyncio.sleep(2)
            else:
                logger.error("Failed to connect to database after 10 attempts")
                raise

    await postgres.ensure_schema()

    config = settings.chat_config()
    if not config.any_provider_configured:
        logger.warning("No LLM configured; chat requests will return setup hints")
    app.state.orchestrator = ChatOrchestrator(config, PostgresConversationStore())
    logger.info(
        "Pain Point Advisor ready (primary={}, fallback={})",
        config.primary.name if config.primary.configured else "-",
        config.fallback.name if config.fallback.configured else "-",
    )
    yield

    await postgres.close_pool()
    logger.info("Pain Point Advisor backend shut down")


app = FastAPI(
    title="Pain Point Advisor API",
    version=VERSION,
    description="AI chat advisor for the strategic pain point dashboard",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat.router)
app.include_router(system.router)


@app.get("/")
async def root():
    return {"message": "Pain Point Advisor API", "version": VERSION, "docs": "/docs"}
