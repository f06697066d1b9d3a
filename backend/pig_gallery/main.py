import os
from functools import lru_cache
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session

from .admin import require_admin
from .config import Settings, get_settings
from .db import get_db, init_database
from .errors import InvalidInput, NotFound, register_exception_handlers
from .geo import GeoResolver
from .imagegen import ImageGenerator
from .logging_config import configure_logging
from .params import get_client_ip, parse_id, parse_limit, parse_page
from .ratelimit import Clock, now_ms
from .schemas import (
    CommentCreate,
    CommentCreateResponse,
    CommentListResponse,
    GenerateRequest,
    GenerateResponse,
    LikeResponse,
    MessageResponse,
    PigCreate,
    PigListResponse,
    PigResponse,
    StatsResponse,
    SubmitResponse,
)
from .services import EngagementService, QueryService, SubmissionService, delete_pig

logger = structlog.get_logger()

settings = get_settings()

app = FastAPI(title="Pig Gallery API")

# The frontend is normally served from the same origin,
# but enabling CORS is still useful for local dev.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.on_event("startup")
def on_startup():
    configure_logging(settings)
    init_database()
    logger.info("startup", app=settings.app_name, environment=settings.environment)


def get_clock() -> Clock:
    return now_ms


@lru_cache
def _geo_resolver(database_path: Optional[str]) -> GeoResolver:
    return GeoResolver(database_path)


def get_geo_resolver(settings: Settings = Depends(get_settings)) -> GeoResolver:
    return _geo_resolver(settings.geoip_database_path)


@lru_cache
def _image_generator(api_key: Optional[str], model: str) -> ImageGenerator:
    return ImageGenerator(api_key, model)


def get_image_generator(settings: Settings = Depends(get_settings)) -> ImageGenerator:
    return _image_generator(settings.gemini_api_key, settings.gemini_model)


def get_client_address(request: Request, settings: Settings = Depends(get_settings)) -> str:
    return get_client_ip(request, settings.trust_proxy_headers)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/api/pigs", response_model=SubmitResponse)
def submit_pig(
    payload: PigCreate,
    client_address: str = Depends(get_client_address),
    db: Session = Depends(get_db),
    geo: GeoResolver = Depends(get_geo_resolver),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    service = SubmissionService(
        db,
        geo,
        limit=settings.submission_limit,
        window_ms=settings.rate_limit_window_ms,
        clock=clock,
    )
    pig = service.submit(payload.name, payload.image, client_address)
    return {"success": True, "id": pig.id, "message": "Submitted!"}


@app.get("/api/pigs", response_model=PigListResponse)
def list_pigs(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    page_size = parse_limit(limit, settings.default_page_size, settings.max_page_size)
    page_num = parse_page(page, page_size)
    search = (search or "").strip() or None
    sort = (sort or "").strip()

    total, pigs = QueryService(db).list_pigs(page_num, page_size, search=search, sort=sort)
    return {"success": True, "total": total, "page": page_num, "search": search, "pigs": pigs}


@app.get("/api/pigs/{pig_id}", response_model=PigResponse)
def get_pig(pig_id: str, db: Session = Depends(get_db)):
    parsed = parse_id(pig_id)
    if parsed is None:
        raise NotFound()
    return {"success": True, "pig": QueryService(db).get_pig(parsed)}


@app.post("/api/pigs/{pig_id}/like", response_model=LikeResponse)
def like_pig(pig_id: str, db: Session = Depends(get_db)):
    parsed = parse_id(pig_id)
    if parsed is None:
        raise InvalidInput("Invalid ID")
    likes = EngagementService(db).like(parsed)
    return {"success": True, "likes": likes}


@app.delete(
    "/api/pigs/{pig_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def remove_pig(pig_id: str, db: Session = Depends(get_db)):
    parsed = parse_id(pig_id)
    if parsed is None:
        raise InvalidInput("Invalid ID")
    delete_pig(db, parsed)
    return {"success": True, "message": "Deleted"}


@app.get("/api/pigs/{pig_id}/comments", response_model=CommentListResponse)
def list_comments(
    pig_id: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    parsed = parse_id(pig_id)
    if parsed is None:
        raise InvalidInput("Invalid ID")
    page_size = parse_limit(limit, settings.default_page_size, settings.max_page_size)
    page_num = parse_page(page, page_size)

    total, comments = EngagementService(db).list_comments(parsed, page_num, page_size)
    return {"success": True, "total": total, "page": page_num, "comments": comments}


@app.post("/api/pigs/{pig_id}/comments", response_model=CommentCreateResponse)
def add_comment(
    pig_id: str,
    payload: Optional[CommentCreate] = None,
    client_address: str = Depends(get_client_address),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    parsed = parse_id(pig_id)
    if parsed is None:
        raise InvalidInput("Invalid ID")
    service = EngagementService(
        db,
        limit=settings.comment_limit,
        window_ms=settings.rate_limit_window_ms,
        clock=clock,
    )
    content = payload.content if payload else None
    comment = service.add_comment(parsed, content, client_address)
    return {
        "success": True,
        "id": comment.id,
        "message": "Comment posted!",
        "comment": comment.to_dict(),
    }


@app.get("/api/stats", response_model=StatsResponse)
def stats(db: Session = Depends(get_db)):
    return {"success": True, "stats": QueryService(db).stats()}


@app.post("/api/ai/generate", response_model=GenerateResponse)
def generate_image(
    payload: GenerateRequest,
    generator: ImageGenerator = Depends(get_image_generator),
):
    generator.ensure_configured()
    if not payload.prompt or not payload.prompt.strip():
        raise InvalidInput("Please enter a prompt")
    message, image = generator.generate(payload.prompt.strip(), payload.image)
    return {"success": True, "message": message, "generatedImage": image}


# Mounted last so it never shadows the API routes
if settings.static_dir and os.path.isdir(settings.static_dir):
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pig_gallery.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.api_workers,
    )
