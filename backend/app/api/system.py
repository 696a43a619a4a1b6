from fastapi import APIRouter, Request
from loguru import logger

from app.db import postgres
from app.models.system import HealthResponse

router = APIRouter(prefix="/api/system", tags=["system"])

VERSION = "0.1.0"


async def check_postgres() -> bool:
    try:
        row = await postgres.fetch_one("SELECT 1")
        return row is not None
    except Exception as e:
        logger.warning("Postgres check failed: {}", e)
        return False


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    config = request.app.state.orchestrator.config
    postgres_ok = await check_postgres()

    return {
        "status": "ok" if postgres_ok and config.any_provider_configured else "error",
        "version": VERSION,
        "dependencies": {"postgres": "connected" if postgres_ok else "error"},
        "providers": {
            config.primary.name: config.primary.configured,
            config.fallback.name: config.fallback.configured,
            "web_search": bool(config.search.api_key),
        },
    }
