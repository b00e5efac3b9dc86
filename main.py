import time
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Body, Depends, FastAPI, Header, HTTPException, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

import config, database, queries, schemas, utils, validation
from errors import ApiError, ConflictError, InternalError, NotFoundError, ValidationError

config.setup_logging()

logger = logging.getLogger(__name__)

database.init_db()

# request limiter, applied to the write endpoints
limiter = Limiter(key_func=get_remote_address, enabled=config.RATE_LIMIT_ENABLED)

#create api
api = FastAPI(
    title="Game Club API",
    version=config.API_VERSION,
    description="A RESTful API for managing game clubs and their events",
    docs_url="/api-docs",
)

api.state.limiter = limiter

# middlewares
api.add_middleware(
    CORSMiddleware,
    allow_origins=config.FRONTEND_URLS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


@api.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    logger.info(f"Incoming request: {request.method} {request.url.path}")

    response = await call_next(request)

    elapsed_ms = (time.perf_counter() - started) * 1000
    level = logging.WARNING if response.status_code >= 400 else logging.INFO
    logger.log(level, "%s %s - %s (%.1fms)", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


# --- ERROR HANDLERS ---

@api.exception_handler(ApiError)
async def handle_api_error(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        cause = getattr(exc, "cause", None)
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=cause)
    else:
        logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=utils.envelope_for(exc))


@api.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    # body that isn't a JSON object, or missing entirely
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if isinstance(part, str)]
    field = location[-1] if location else "body"
    message = first.get("msg", "Invalid request")
    logger.warning("Request validation failed for field: %s | %s", field, message)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=utils.validation_error(field, message))


@api.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        logger.warning(f"Route not found: {request.method} {request.url.path}")
        message = utils.ROUTE_NOT_FOUND
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=utils.error_response(exc.status_code, message),
        headers=getattr(exc, "headers", None),
    )


@api.exception_handler(RateLimitExceeded)
async def handle_rate_limit(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)} on {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=utils.error_response(status.HTTP_429_TOO_MANY_REQUESTS, f"Rate limit exceeded: {exc.detail}"),
    )


@api.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=utils.internal_error(utils.INTERNAL_ERROR, exc),
    )


# documented error envelopes for the /clubs routes
ERROR_RESPONSES = {
    400: {"model": schemas.ErrorResponse, "description": "Validation failed"},
    403: {"model": schemas.ErrorResponse, "description": "Invalid API Key"},
    404: {"model": schemas.ErrorResponse, "description": "Club not found"},
    409: {"model": schemas.ErrorResponse, "description": "Club name already exists"},
    500: {"model": schemas.ErrorResponse, "description": "Internal server error"},
}


# helper
async def verify_api_key(x_api_key: Optional[str] = Header(None)):
    # only enforced when a key is configured
    if config.API_SECRET_KEY and x_api_key != config.API_SECRET_KEY:
        raise HTTPException(status_code=403, detail="Invalid API Key")


# helper
def require_valid(result: schemas.ValidationResult) -> Any:
    """Unwraps a ValidationResult or raises the matching ApiError."""
    if result.ok:
        return result.value
    if result.error.internal:
        raise InternalError("Internal validation error")
    raise ValidationError(result.error.field, result.error.message)


# helper
def map_club_to_response(club) -> schemas.ClubOut:
    """Convert a Club model (or projected row) to the ClubOut schema."""
    return schemas.ClubOut.model_validate(club)


# helper
def map_event_to_response(event) -> schemas.EventOut:
    return schemas.EventOut.model_validate(event)


@api.get("/", response_model=schemas.InfoResponse, response_model_exclude_none=True)
async def root():
    return utils.success_response(
        {
            "version": config.API_VERSION,
            "documentation": "/api-docs",
            "endpoints": {
                "clubs": "/clubs",
                "events": "/clubs/{id}/events",
                "upcoming": "/clubs/{id}/events/upcoming",
                "health": "/api/health",
            },
        },
        "Welcome to Game Club API",
    )


@api.get("/api/health", response_model=schemas.InfoResponse, response_model_exclude_none=True)
async def health_check():
    return utils.success_response(
        {"timestamp": datetime.now(timezone.utc).isoformat()},
        "Game Club API is running",
    )


# list clubs, optionally filtered by name/description
@api.get(
    "/clubs",
    response_model=schemas.ClubListResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(verify_api_key)],
)
async def get_all_clubs(
    search: Optional[str] = Query(None, description="Matches club name or description"),
    db: Session = Depends(database.get_db),
):
    search_term = require_valid(validation.validate_search_term(search))

    try:
        logger.info(f"Fetching clubs, search: {search_term or 'all'}")

        clubs = queries.list_clubs(db, search_term)

        logger.info(f"Successfully fetched {len(clubs)} clubs")
        return utils.success_response([map_club_to_response(c) for c in clubs])

    except ApiError:
        raise
    except Exception as e:
        logger.exception("Error in get_all_clubs")
        db.rollback()
        raise InternalError("Error fetching clubs", e)


@api.post(
    "/clubs",
    response_model=schemas.ClubResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_api_key)],
)
@limiter.limit(config.RATE_LIMIT)
async def create_club(
    request: Request,
    response: Response,
    payload: Dict[str, Any] = Body(..., examples=[{"name": "Retro Arcade", "description": "8-bit fans"}]),
    db: Session = Depends(database.get_db),
):
    club_in = require_valid(validation.validate_club_creation(payload))

    try:
        logger.info(f"Creating new club: {club_in['name'][:50]}")

        # the unique constraint still guards the race between this check and the insert
        existing_club = queries.find_club_by_name(db, club_in["name"])
        if existing_club:
            logger.warning(f"Club creation failed - name already exists: {club_in['name']} (id {existing_club.id})")
            raise ConflictError(utils.CLUB_NAME_EXISTS)

        new_club = queries.create_club(db, club_in["name"], club_in["description"])

        logger.info(f"Business logic: create club | id={new_club.id} name={new_club.name}")
        return utils.success_response(map_club_to_response(new_club), utils.CLUB_CREATED)

    except ApiError:
        raise
    except Exception as e:
        logger.exception(f"Error in create_club for name {club_in['name']!r}")
        db.rollback()
        raise InternalError("Error creating club", e)


# get club's events, paginated when limit or offset is given
@api.get(
    "/clubs/{club_id}/events",
    response_model=schemas.EventListResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(verify_api_key)],
)
async def get_club_events(
    club_id: str,
    limit: Optional[str] = Query(None, description="Page size, 1-100"),
    offset: Optional[str] = Query(None, description="Events to skip"),
    db: Session = Depends(database.get_db),
):
    club_pk = require_valid(validation.validate_resource_id(club_id, "Club"))
    paginate = limit is not None or offset is not None
    if paginate:
        page_limit, page_offset = require_valid(validation.validate_pagination(limit, offset))

    try:
        logger.info(f"Fetching events for club {club_pk}")

        if not queries.club_exists(db, club_pk):
            raise NotFoundError("Club", club_pk)

        if paginate:
            page = queries.list_events_by_club_paginated(db, club_pk, limit=page_limit, offset=page_offset)
            return utils.success_response(
                [map_event_to_response(e) for e in page["events"]],
                pagination=page["pagination"],
            )

        events = queries.list_events_by_club(db, club_pk)

        logger.info(f"Successfully fetched {len(events)} events for club {club_pk}")
        return utils.success_response([map_event_to_response(e) for e in events])

    except ApiError:
        raise
    except Exception as e:
        logger.exception(f"Error in get_club_events for club {club_pk}")
        db.rollback()
        raise InternalError("Error fetching events", e)


@api.get(
    "/clubs/{club_id}/events/upcoming",
    response_model=schemas.EventListResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(verify_api_key)],
)
async def get_upcoming_club_events(
    club_id: str,
    days: Optional[str] = Query(None, description="How many days ahead to look, default 30"),
    db: Session = Depends(database.get_db),
):
    club_pk = require_valid(validation.validate_resource_id(club_id, "Club"))
    days_ahead = require_valid(validation.validate_days(days))

    try:
        if not queries.club_exists(db, club_pk):
            raise NotFoundError("Club", club_pk)

        events = queries.list_upcoming_events(db, club_pk, days=days_ahead)
        return utils.success_response([map_event_to_response(e) for e in events], days=days_ahead)

    except ApiError:
        raise
    except Exception as e:
        logger.exception(f"Error in get_upcoming_club_events for club {club_pk}")
        db.rollback()
        raise InternalError("Error fetching upcoming events", e)


@api.post(
    "/clubs/{club_id}/events",
    response_model=schemas.EventResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(verify_api_key)],
)
@limiter.limit(config.RATE_LIMIT)
async def create_event(
    request: Request,
    response: Response,
    club_id: str,
    payload: Dict[str, Any] = Body(..., examples=[{
        "title": "Pac-Man High Score Night",
        "description": "Bring your best strategy",
        "event_date": "2030-12-31T18:00:00Z",
    }]),
    db: Session = Depends(database.get_db),
):
    club_pk = require_valid(validation.validate_resource_id(club_id, "Club"))
    event_in = require_valid(validation.validate_event_creation(payload))

    try:
        logger.info(f"Creating new event for club {club_pk}: {event_in['title'][:50]}")

        if not queries.club_exists(db, club_pk):
            raise NotFoundError("Club", club_pk)

        new_event = queries.create_event(
            db,
            club_id=club_pk,
            title=event_in["title"],
            description=event_in["description"],
            event_date=event_in["event_date"],
        )

        logger.info(f"Business logic: create event | id={new_event.id} club_id={club_pk} title={new_event.title}")
        return utils.success_response(map_event_to_response(new_event), utils.EVENT_CREATED)

    except ApiError:
        raise
    except Exception as e:
        logger.exception(f"Error in create_event for club {club_pk}")
        db.rollback()
        raise InternalError("Error creating event", e)


if __name__ == "__main__":

    uvicorn.run(
        "main:api",
        host="0.0.0.0",
        port=config.BACKEND_PORT,
        reload=config.is_development()  # Only reload in dev mode
    )
