"""
HTTP API for the VIP Reformas scraper.

Every request gets its own browser session; failures are returned as JSON
with a server-error status instead of propagating.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

from src.VIP.config import SERVICE_NAME, Settings
from src.VIP.errors import ClientInputError
from src.VIP.models import utc_now
from src.VIP.vip_scraper import VipScraper

logger = logging.getLogger(__name__)


class WorkRequest(BaseModel):
    work_id: Optional[str] = None

    @field_validator("work_id", mode="before")
    @classmethod
    def _coerce_numeric_id(cls, value: Any) -> Any:
        # The portal IDs are numeric and clients often send them as numbers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class SearchRequest(BaseModel):
    search_text: Optional[str] = None


def timestamp() -> str:
    return utc_now().isoformat()


def get_scraper(request: Request) -> VipScraper:
    return request.app.state.scraper


def _client_error(exc: ClientInputError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})


def _server_error(content: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def create_app(settings: Settings, scraper: Optional[VipScraper] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Process configuration
        scraper: Scraper to serve requests with (defaults to one using Chromium)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(f"🚀 Server running on port {settings.port}")
        logger.info(f"📧 Email configured: {'✅' if settings.credentials.email else '❌'}")
        logger.info(f"🔐 Password configured: {'✅' if settings.credentials.password else '❌'}")
        if settings.max_sessions > 0:
            logger.info(f"Concurrent browser sessions capped at {settings.max_sessions}")
        yield

    app = FastAPI(title=SERVICE_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.scraper = scraper or VipScraper(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def health() -> Dict[str, Any]:
        return {"status": "OK", "service": SERVICE_NAME, "timestamp": timestamp()}

    @app.post("/check-work")
    async def check_work(
        payload: Optional[WorkRequest] = None,
        scraper: VipScraper = Depends(get_scraper),
    ):
        work_id = payload.work_id if payload else None

        try:
            exists = await scraper.check_work(work_id)
        except ClientInputError as exc:
            return _client_error(exc)
        except Exception as exc:
            logger.error(f"❌ Error with work {work_id}: {exc}")
            return _server_error({
                "error": str(exc),
                "work_id": work_id,
                "exists": False,
                "timestamp": timestamp(),
            })

        return {
            "work_id": work_id,
            "exists": exists,
            "timestamp": timestamp(),
            "success": True,
        }

    @app.post("/get-work-data")
    async def get_work_data(
        payload: Optional[WorkRequest] = None,
        scraper: VipScraper = Depends(get_scraper),
    ):
        work_id = payload.work_id if payload else None

        try:
            record = await scraper.get_work_data(work_id)
        except ClientInputError as exc:
            return _client_error(exc)
        except Exception as exc:
            logger.error(f"❌ Error getting data for work {work_id}: {exc}")
            return _server_error({
                "error": str(exc),
                "work_id": work_id,
                "success": False,
                "timestamp": timestamp(),
            })

        return {
            "work_id": work_id,
            "success": True,
            "data": record.to_dict(),
            "timestamp": timestamp(),
        }

    @app.post("/search-works")
    async def search_works(
        payload: Optional[SearchRequest] = None,
        scraper: VipScraper = Depends(get_scraper),
    ):
        search_text = payload.search_text if payload else None

        try:
            summary = await scraper.search_works(search_text)
        except Exception as exc:
            logger.error(f"❌ Error searching works: {exc}")
            return _server_error({"error": str(exc)})

        return {
            "success": True,
            "search_text": search_text,
            **summary.to_dict(),
            "timestamp": timestamp(),
        }

    return app
