"""
HTTP API for PawMatch.
Exposes animal listings and the match lifecycle over FastAPI and maps the
error taxonomy onto status codes.
"""

import sys
from typing import Any, Dict, Optional
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import Engine

from .config import Settings, get_settings
from .db.animal_store import AnimalStore
from .db.match_store import MatchStore
from .db.tables import build_engine, init_db
from .db.transaction import TransactionScope
from .errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PawMatchError,
    ValidationError,
)
from .schemas.animal_data import AnimalChanges, AnimalCreate
from .services.animal_service import AnimalService
from .services.match_engine import MatchEngine
from .utils.validators import validate_match_message

# Configure logging
logger.remove()  # Remove default handler
logger.add(sys.stderr, level=get_settings().log_level)

ID_PATTERN = r"^\d+$"


class MatchCreateRequest(BaseModel):
    """Body of POST /v1/animal/match."""
    match_animal_id: str = Field(..., pattern=ID_PATTERN, description="Animal being asked for")
    user_animal_id: str = Field(..., pattern=ID_PATTERN, description="Animal offered by the caller")
    message: str

    @field_validator("message")
    @classmethod
    def _message_length(cls, value: str) -> str:
        if not validate_match_message(value):
            raise ValueError("message length is out of bounds")
        return value


class MatchIdRequest(BaseModel):
    """Body of approve/reject requests."""
    match_id: str = Field(..., pattern=ID_PATTERN)


def status_for(error: PawMatchError) -> int:
    """Map a PawMatch error onto an HTTP status code."""
    # Authorization failures look like missing resources so existence is not leaked
    if isinstance(error, (NotFoundError, AuthorizationError)):
        return 404
    if isinstance(error, (ValidationError, ConflictError)):
        return 400
    return 500


def success(data: Any = None) -> Dict[str, Any]:
    """Wrap a payload in the standard response envelope."""
    return {"message": "success", "data": data}


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """
    Resolve the requesting user.

    Token verification happens upstream; by the time a request reaches this
    service the gateway has put the authenticated user id in X-User-Id.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="missing user identity")
    return x_user_id


def create_app(engine: Optional[Engine] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application and wire services.

    Args:
        engine: Database engine (built from settings when omitted)
        settings: Application settings (defaults to the global instance)

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()
    engine = engine if engine is not None else build_engine(settings)

    scope = TransactionScope(engine, settings)
    animal_store = AnimalStore()
    animal_service = AnimalService(animal_store, scope)
    match_engine = MatchEngine(animal_store, MatchStore(), scope)

    app = FastAPI(
        title="PawMatch API",
        description="Animal listings and breeding match proposals",
        version="1.0.0",
        debug=settings.debug
    )
    app.state.engine = engine
    app.state.animal_service = animal_service
    app.state.match_engine = match_engine

    @app.on_event("startup")
    async def startup_event():
        """Create tables and log configuration."""
        logger.info("PawMatch API is starting up...")
        logger.info(f"Environment: {settings.environment}")
        init_db(engine)
        logger.info("Startup complete - ready to accept requests")

    @app.exception_handler(PawMatchError)
    async def pawmatch_error_handler(request: Request, exc: PawMatchError):
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
            return JSONResponse(status_code=status_code, content={"detail": "internal error"})
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.debug(f"Invalid request body for {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"detail": "invalid request body"})

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "pawmatch-api"}

    # --- Matches (declared before /v1/animal/{animal_id}) ---

    @app.post("/v1/animal/match", status_code=201)
    def create_match(body: MatchCreateRequest, user_id: str = Depends(current_user_id)):
        match = match_engine.create_match(
            issuer_animal_id=body.user_animal_id,
            receiver_animal_id=body.match_animal_id,
            user_id=user_id,
            message=body.message,
        )
        return success({"id": str(match.id), "created_at": match.created_at.isoformat()})

    @app.get("/v1/animal/match")
    def list_matches(user_id: str = Depends(current_user_id)):
        items = []
        for detail in match_engine.list_matches(user_id):
            user_animal, match_animal = detail.own_and_other(user_id)
            items.append({
                "id": str(detail.id),
                "message": detail.message,
                "created_at": detail.created_at.isoformat(),
                "issued_by": detail.issuer_user_id,
                "user_animal_detail": user_animal.model_dump(mode="json", exclude={"is_deleted"}),
                "match_animal_detail": match_animal.model_dump(mode="json", exclude={"is_deleted"}),
            })
        return success(items)

    @app.post("/v1/animal/match/approve")
    def approve_match(body: MatchIdRequest, user_id: str = Depends(current_user_id)):
        match_engine.approve_match(body.match_id, user_id=user_id)
        return success()

    @app.post("/v1/animal/match/reject")
    def reject_match(body: MatchIdRequest, user_id: str = Depends(current_user_id)):
        match_engine.reject_match(body.match_id, user_id=user_id)
        return success()

    @app.delete("/v1/animal/match/{match_id}")
    def delete_match(match_id: str, user_id: str = Depends(current_user_id)):
        match_engine.delete_match(match_id, user_id)
        return success()

    # --- Animals ---

    @app.post("/v1/animal", status_code=201)
    def create_animal(body: AnimalCreate, user_id: str = Depends(current_user_id)):
        animal = animal_service.create_animal(user_id, body)
        return success({"id": str(animal.id), "created_at": animal.created_at.isoformat()})

    @app.get("/v1/animal")
    def list_animals(
        owned: Optional[bool] = None,
        limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
        offset: int = Query(default=0, ge=0),
        user_id: str = Depends(current_user_id),
    ):
        animals = animal_service.list_animals(
            owner_id=user_id if owned is True else None,
            exclude_owner_id=user_id if owned is False else None,
            limit=limit,
            offset=offset,
        )
        return success([a.model_dump(mode="json", exclude={"is_deleted"}) for a in animals])

    @app.get("/v1/animal/{animal_id}")
    def get_animal(animal_id: str, user_id: str = Depends(current_user_id)):
        animal = animal_service.get_animal(animal_id)
        return success(animal.model_dump(mode="json", exclude={"is_deleted"}))

    @app.put("/v1/animal/{animal_id}")
    def update_animal(animal_id: str, body: AnimalChanges, user_id: str = Depends(current_user_id)):
        animal = animal_service.update_animal(animal_id, user_id, body)
        return success(animal.model_dump(mode="json", exclude={"is_deleted"}))

    @app.delete("/v1/animal/{animal_id}")
    def delete_animal(animal_id: str, user_id: str = Depends(current_user_id)):
        animal_service.delete_animal(animal_id, user_id)
        return success()

    return app


def main() -> None:
    """Run the API with uvicorn."""
    import uvicorn
    settings = get_settings()
    uvicorn.run(create_app(settings=settings), host=settings.api_host, port=settings.api_port)


# Run with: uvicorn pawmatch.api:create_app --factory --reload --port 8080
if __name__ == "__main__":
    main()
