import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

# .env holds project defaults, .env.local wins over it; real env vars win over .env
_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_ROOT / ".env", override=False)
load_dotenv(_ROOT / ".env.local", override=True)

from .api import auth, dashboard, habits
from .api.deps import current_session
from .api.health import create_health_router, set_start_time
from .core.config import Settings, get_settings
from .core.config_validator import log_config_summary, validate_config
from .core.database import close_database, init_database
from .core.services import get_service, reset_services, setup_services
from .middleware.api_key import ApiKeyMiddleware
from .middleware.error_handler import ErrorHandlerMiddleware, register_exception_handlers
from .middleware.request_id import RequestIdMiddleware
from .services.user_session import UserSession
from .utils.logging import setup_logging
from .utils.task_tracker import cancel_all_tasks, get_active_task_count
from .version import __version__

_settings = get_settings()
setup_logging(
    log_level=_settings.log_level,
    log_to_file=_settings.environment.lower() not in ("test", "testing"),
)
logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:8000"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate config, open the store and wire services; undo it all on exit."""
    settings = get_settings()
    logger.info(f"HabitFlow {__version__} starting ({settings.environment})")

    problems = validate_config(settings)
    if problems:
        for problem in problems:
            logger.error(f"Config validation error: {problem}")
        logger.critical(f"Refusing to start with {len(problems)} configuration error(s)")
        sys.exit(1)
    log_config_summary(settings)

    try:
        await init_database(settings.database_url)
    except Exception as e:
        logger.error(f"Could not open the habit store: {e}")
        raise

    setup_services()
    set_start_time()

    yield

    logger.info("HabitFlow shutting down")
    # Live sessions first, so their toggles roll back before the engine closes
    await get_service("sessions").close()
    if get_active_task_count():
        await cancel_all_tasks(timeout=5.0)
    await close_database()
    reset_services()
    logger.info("Shutdown complete")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title="HabitFlow",
        description="Habit tracking with schedules, streaks and analytics",
        version=__version__,
        lifespan=lifespan,
    )

    # Starlette runs the last-added middleware outermost
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(ApiKeyMiddleware, api_key=settings.store_api_key)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(app)

    @app.get("/")
    async def landing(user_session: UserSession = Depends(current_session)) -> Dict[str, Any]:
        return {
            "message": "HabitFlow",
            "version": __version__,
            "authenticated": user_session.authenticated,
        }

    app.include_router(create_health_router())
    app.include_router(auth.router)
    app.include_router(dashboard.router)
    app.include_router(habits.router)
    return app


app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    logger.info(f"Starting server on {host}:{port}")
    uvicorn.run("habitflow.main:app", host=host, port=port, reload=True, log_level="info")
