import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.exc import SQLAlchemyError

from config import Settings, configure_logging, load_settings
from database import Database
from errors import AuthError, StoreError, TransactionError
from schemas import CheckoutRequest, LoginRequest, RegisterRequest, UserOut, UserProfile
from security import decode_access_token
from services import AccountService, CatalogService, CheckoutService, DiagnosticsService

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login", auto_error=False)
router = APIRouter()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("SECRET_KEY: %s", "set" if settings.secret_key else "EMPTY")
    logger.info("Database: %s", app.state.db.engine.url.render_as_string(hide_password=True))
    try:
        app.state.db.now()
        logger.info("Connected to database")
    except SQLAlchemyError as e:
        logger.error("Database connection error: %s", e)
    yield
    app.state.db.dispose()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_accounts(request: Request) -> AccountService:
    return request.app.state.accounts


def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog


def get_checkout(request: Request) -> CheckoutService:
    return request.app.state.checkout


def get_diagnostics(request: Request) -> DiagnosticsService:
    return request.app.state.diagnostics


async def get_current_user_id(token: Optional[str] = Depends(oauth2_scheme),
                              settings: Settings = Depends(get_settings)) -> int:
    if not token:
        raise AuthError("No token provided", status_code=status.HTTP_401_UNAUTHORIZED)
    user_id = decode_access_token(token, settings.secret_key, settings.algorithm)
    if user_id is None:
        raise AuthError("Invalid token", status_code=status.HTTP_403_FORBIDDEN)
    return user_id


async def store_error_handler(request: Request, exc: StoreError):
    body = {"message": exc.message}
    if isinstance(exc, TransactionError):
        body["success"] = False
    return JSONResponse(status_code=exc.status_code, content=body)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": "Invalid request"})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": "Server error"})


def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    db = db or Database.from_url(settings.database_url, settings.db_pool_size, settings.db_max_overflow)

    app = FastAPI(title="Storefront API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.accounts = AccountService(db, settings)
    app.state.catalog = CatalogService(db)
    app.state.checkout = CheckoutService(db)
    app.state.diagnostics = DiagnosticsService(db)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)
    return app


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, accounts: AccountService = Depends(get_accounts)):
    user = accounts.register(payload)
    return {"message": "User registered successfully", "user": UserOut.model_validate(user).model_dump()}


@router.post("/login")
def login(payload: LoginRequest, accounts: AccountService = Depends(get_accounts)):
    result = accounts.login(payload)
    return {"token": result["token"], "user": UserProfile.model_validate(result["user"]).model_dump()}


@router.get("/verify-token")
async def verify_token(token: Optional[str] = Depends(oauth2_scheme), settings: Settings = Depends(get_settings)):
    if not token:
        return JSONResponse(status_code=401, content={"valid": False, "message": "No token provided"})
    user_id = decode_access_token(token, settings.secret_key, settings.algorithm)
    if user_id is None:
        return JSONResponse(status_code=401, content={"valid": False, "message": "Invalid token"})
    return {"valid": True, "userId": user_id}


@router.get("/products")
def list_products(catalog: CatalogService = Depends(get_catalog)):
    return catalog.list_products()


@router.get("/products/{product_id}")
def get_product(product_id: int, catalog: CatalogService = Depends(get_catalog)):
    return catalog.get_product(product_id)


@router.post("/checkout")
def checkout(payload: CheckoutRequest,
             user_id: int = Depends(get_current_user_id),
             orders: CheckoutService = Depends(get_checkout)):
    order_id = orders.checkout(user_id, payload)
    return {"success": True, "message": "Order successfully created", "orderId": order_id}


@router.get("/health")
def health(diagnostics: DiagnosticsService = Depends(get_diagnostics)):
    return diagnostics.health()


@router.get("/test-db")
def test_db(diagnostics: DiagnosticsService = Depends(get_diagnostics)):
    try:
        return diagnostics.test_db()
    except SQLAlchemyError as e:
        return JSONResponse(status_code=500, content={"status": "error", "message": str(e)})


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
