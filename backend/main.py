"""
Chalkboard - AI tutor agent for chat channels
FastAPI Backend with streamed Gemini responses + web search
"""

from contextlib import asynccontextmanager
import asyncio
import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()  # Load environment variables from .env file if present

from config import runtime_config  # noqa: E402
from logging_config import setup_logging  # noqa: E402
from routers import chat  # noqa: E402
from services.agent_registry import get_agent_registry  # noqa: E402

setup_logging(runtime_config.log_level)
logger = logging.getLogger(__name__)

CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]


async def periodic_idle_sweep(interval_s: float, max_idle_s: float):
    """Periodically dispose agents whose channel has gone quiet"""
    registry = get_agent_registry()
    while True:
        await asyncio.sleep(interval_s)
        try:
            await registry.dispose_idle(max_idle_s)
        except Exception as e:
            logger.error(f"Idle sweep error: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events"""
    if not runtime_config.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set - agents will refuse to start")
    if not runtime_config.tavily_api_key:
        logger.warning("TAVILY_API_KEY is not set - web search will report itself unavailable")

    sweep_task = asyncio.create_task(
        periodic_idle_sweep(
            interval_s=runtime_config.agent_sweep_interval_s,
            max_idle_s=runtime_config.agent_idle_timeout_s,
        )
    )
    logger.info(f"Chalkboard ready (model={runtime_config.model_chat})")
    yield

    # Shutdown
    sweep_task.cancel()
    try:
        await sweep_task
    except asyncio.CancelledError:
        pass

    disposed = await get_agent_registry().dispose_all()
    logger.info(f"Chalkboard signing off ({disposed} agent(s) disposed)")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Chalkboard",
        description="AI tutor agent for chat channels",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(chat.router, tags=["chat"])

    @app.get("/health")
    async def health():
        """Liveness plus a summary of agent state and configuration."""
        registry = get_agent_registry()
        checks = {
            "gemini_key": "ok" if runtime_config.gemini_api_key else "missing",
            "tavily_key": "ok" if runtime_config.tavily_api_key else "missing",
        }
        return {
            "status": "healthy" if checks["gemini_key"] == "ok" else "degraded",
            "checks": checks,
            "active_agents": len(registry),
            "config": runtime_config.to_dict(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")), ws_max_size=1048576)
