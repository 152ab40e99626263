"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import router, get_label_extractor
from .config import get_settings
from . import __version__

logging.basicConfig(
    level=logging.DEBUG if get_settings().debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


API_DESCRIPTION = """
## Alcohol Label Verification API

Checks the text on an alcohol beverage label against the values declared in
its regulatory application.

### Endpoints
- `/verify`: read a label image and compare every field
- `/compare`: compare label text you already have
- `/verify/batch` (JSON) and `/verify/batch/csv` (images + CSV), add `?export=true` for a CSV report
- `/batch/template`: CSV template for batch uploads

The government warning is always checked word-for-word against 27 CFR Part 16.

### Verdicts
Each field is `match`, `mismatch`, `not_found` or `partial_match`. A label
fails if any field is a mismatch or not found, needs review if any field is a
partial match, and passes otherwise.
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log extraction readiness on startup."""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} {__version__}")

    if get_label_extractor().is_configured:
        logger.info(
            f"Extraction model {settings.extraction_model}, "
            f"up to {settings.max_concurrent_extractions} concurrent calls per batch"
        )
    else:
        logger.warning("ANTHROPIC_API_KEY not set - image verification disabled, /compare still available")

    yield

    logger.info(f"Stopping {settings.app_name}")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=API_DESCRIPTION,
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api/v1")

    @app.get("/", include_in_schema=False)
    async def root():
        return {"service": settings.app_name, "version": __version__, "docs": app.docs_url}

    return app


app = create_app()
