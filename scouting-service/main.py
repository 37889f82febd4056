# main.py
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from auth_service import AuthService
from database import Database
from dependencies import SessionGateMiddleware, get_auth_service, get_current_user, get_repository
from errors import AppError
from repository import PlayerRepository
from schemas import (
    AuthResponse,
    Credentials,
    DashboardStats,
    EvaluationCreate,
    EvaluationOut,
    OkResponse,
    PlayerCreate,
    PlayerOut,
    UserOut,
)

# Logging setup
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SESSION_MAX_AGE = config.TOKEN_EXPIRE_DAYS * 24 * 60 * 60


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.SECRET_KEY == config.DEV_SECRET_KEY:
        logger.warning("SECRET_KEY is not set; using the development key.")

    await app.state.db.connect(create_tables=config.CREATE_TABLES)

    yield  # Application is running

    await app.state.db.disconnect()


# Session cookie helpers
def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.COOKIE_NAME,
        value=token,
        max_age=SESSION_MAX_AGE,
        path="/",
        httponly=True,
        samesite="lax",
        secure=config.COOKIE_SECURE,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=config.COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="lax",
        secure=config.COOKIE_SECURE,
    )


# Public routes
public_router = APIRouter(prefix="/api")


@public_router.get("/health")
async def health():
    return {"ok": True}


@public_router.post("/auth/register", response_model=AuthResponse)
async def register(
    payload: Credentials,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
):
    user, token = await auth.register(payload.email, payload.password)
    set_session_cookie(response, token)
    return AuthResponse(user=user)


@public_router.post("/auth/login", response_model=AuthResponse)
async def login(
    payload: Credentials,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
):
    user, token = await auth.login(payload.email, payload.password)
    set_session_cookie(response, token)
    return AuthResponse(user=user)


@public_router.post("/auth/logout", response_model=OkResponse)
async def logout(response: Response):
    clear_session_cookie(response)
    return OkResponse()


# Protected routes
protected_router = APIRouter(prefix="/api", dependencies=[Depends(get_current_user)])


@protected_router.get("/auth/me", response_model=AuthResponse)
async def me(current_user: UserOut = Depends(get_current_user)):
    return AuthResponse(user=current_user)


@protected_router.get("/players", response_model=List[PlayerOut])
async def list_players(repo: PlayerRepository = Depends(get_repository)):
    return await repo.list_players()


@protected_router.post("/players", response_model=PlayerOut, status_code=status.HTTP_201_CREATED)
async def create_player(payload: PlayerCreate, repo: PlayerRepository = Depends(get_repository)):
    return await repo.create_player(payload.full_name, payload.birthdate, payload.position)


@protected_router.delete("/players/{player_id}", response_model=OkResponse)
async def delete_player(player_id: int, repo: PlayerRepository = Depends(get_repository)):
    await repo.delete_player(player_id)
    return OkResponse()


@protected_router.get("/players/{player_id}/evaluations", response_model=List[EvaluationOut])
async def list_evaluations(player_id: int, repo: PlayerRepository = Depends(get_repository)):
    return await repo.list_evaluations(player_id)


@protected_router.post(
    "/players/{player_id}/evaluations",
    response_model=EvaluationOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_evaluation(
    player_id: int,
    payload: EvaluationCreate,
    repo: PlayerRepository = Depends(get_repository),
):
    return await repo.create_evaluation(
        player_id,
        date=payload.date,
        evaluator_name=payload.evaluator_name,
        notes=payload.notes,
        score=payload.score,
    )


@protected_router.get("/dashboard", response_model=DashboardStats)
async def dashboard(repo: PlayerRepository = Depends(get_repository)):
    return await repo.dashboard_stats()


# Error handling
def validation_message(exc: RequestValidationError) -> str:
    for error in exc.errors():
        loc = error.get("loc", ())
        if loc and loc[0] == "path":
            return "Invalid id"
        if error.get("type") == "json_invalid":
            return "invalid JSON body"
        field = loc[-1] if len(loc) > 1 else None
        if error.get("type") == "missing":
            return f"{field} is required" if field else "request body is required"
        ctx_error = (error.get("ctx") or {}).get("error")
        if ctx_error is not None:
            return str(ctx_error)
        if field is not None:
            return f"{field}: {error.get('msg')}"
        return error.get("msg") or "invalid request"
    return "invalid request"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": validation_message(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "server error"},
        )


def create_app(database: Optional[Database] = None) -> FastAPI:
    app = FastAPI(title="Player Scouting API", lifespan=lifespan)
    app.state.db = database or Database(config.DATABASE_URL, echo=config.SQL_ECHO)

    # Added first so CORS stays outermost and also decorates 401 responses
    app.add_middleware(SessionGateMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)
    app.include_router(public_router)
    app.include_router(protected_router)
    return app


app = create_app()
