import time
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from docverctl.core.config import settings
from docverctl.core.exceptions import ApiError
from docverctl.database.mongodb import connect_db, close_db, ensure_indexes
from docverctl.middleware.rate_limit import RateLimitMiddleware
from docverctl.utils.logger import logger
from docverctl.api.routes import admin, auth, files, github, projects, users


app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)


# Rate limiting runs inside CORS so 429s still carry CORS headers
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f}ms)")
    return response


@app.on_event("startup")
async def startup():
    await connect_db()
    await ensure_indexes()

@app.on_event("shutdown")
async def shutdown():
    await close_db()


def _error_response(status_code: int, message: str, details=None, headers=None) -> JSONResponse:
    content = {"error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _clean_validation_errors(errors) -> list:
    return [
        {
            "loc": [str(part) for part in err.get("loc", [])],
            "msg": str(err.get("msg", "")),
            "type": str(err.get("type", "unknown")),
        }
        for err in errors
    ]


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return _error_response(exc.status_code, exc.message, exc.details, getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _error_response(400, "Validation failed", _clean_validation_errors(exc.errors()))


@app.exception_handler(ValidationError)
async def model_validation_handler(request: Request, exc: ValidationError):
    # Query models built inside route handlers
    return _error_response(400, "Validation failed", _clean_validation_errors(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error_response(500, "Internal server error")


@app.get("/")
def root():
    return {"message": f"{settings.APP_NAME} backend running"}

@app.get("/health")
def health_check():
    return {"status": "healthy"}


# Include routers
app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(projects.router, prefix="/projects", tags=["Projects"])
app.include_router(files.router, prefix="/projects", tags=["Files"])
app.include_router(github.router, prefix="/github", tags=["GitHub"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])
