from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from contextlib import asynccontextmanager
from dotenv import load_dotenv
import json
import traceback

load_dotenv()

from signaling.routes import calls, websocket
from signaling.core.config import settings
from signaling.core.errors import SignalingError
from signaling.db.session import engine, Base
from signaling.utils.logger import configure_logging, get_logger, safe_repr
import signaling.models  # noqa: F401  (registers tables on Base)

configure_logging(settings.LOG_LEVEL)
logger = get_logger("signaling.api")


# Custom JSON encoder that keeps opaque payloads byte-for-byte (no ASCII escaping)
class UnicodeJSONResponse(JSONResponse):
    def render(self, content) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
        ).encode("utf-8")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup."""
    Base.metadata.create_all(bind=engine)
    logger.info("Call signaling API starting up...")
    yield
    logger.info("Call signaling API shutting down...")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Call Signaling API",
        description="Offer/answer and ICE candidate exchange for peer calls",
        version="1.0.0",
        openapi_tags=[
            {"name": "Calls", "description": "Call signaling endpoints"},
            {"name": "WebSocket", "description": "Push hints for call changes"},
        ],
        default_response_class=UnicodeJSONResponse,
        lifespan=lifespan,
    )

    # Add request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all incoming API requests"""
        response = await call_next(request)
        logger.info("[%s] %s - Status: %s", request.method, request.url.path, response.status_code)
        return response

    # Configure CORS - MUST be added before routes
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    def cors_headers(request: Request) -> dict:
        """Error responses bypass the CORS middleware, so add the headers by hand"""
        origin = request.headers.get("origin")
        headers = {}
        if origin in settings.CORS_ORIGINS:
            headers["Access-Control-Allow-Origin"] = origin
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers

    @app.exception_handler(SignalingError)
    async def signaling_exception_handler(request: Request, exc: SignalingError):
        """Map coordinator errors to HTTP responses"""
        logger.info("[%s] %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc.message)
        return UnicodeJSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code},
            headers=cors_headers(request)
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions and ensure CORS headers are included"""
        headers = cors_headers(request)
        if exc.headers:
            headers.update(exc.headers)
        return UnicodeJSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors with CORS headers"""
        return UnicodeJSONResponse(
            status_code=422,
            content={"detail": jsonable_encoder(exc.errors())},
            headers=cors_headers(request)
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions and ensure CORS headers are included"""
        logger.error("Unhandled error on %s: %s\n%s", request.url.path, safe_repr(exc), traceback.format_exc())
        return UnicodeJSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
            headers=cors_headers(request)
        )

    # Include routers
    app.include_router(calls.router, prefix="/api/calls", tags=["Calls"])
    app.include_router(websocket.router, prefix="/api", tags=["WebSocket"])

    @app.get("/")
    async def root():
        return {"message": "Welcome to the Call Signaling API"}

    @app.get("/api/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()

# Run uvicorn server when file is executed directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
