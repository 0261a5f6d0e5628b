from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portfolio_manager.core.config import settings
from portfolio_manager.core.exceptions import (
    ConcurrentUpdateError,
    DuplicateResourceError,
    PortfolioManagerError,
    QuoteProviderError,
    ResourceNotFoundError,
    ValidationError,
)
from portfolio_manager.core.logging_config import get_logger, setup_logging
from portfolio_manager.core.middleware import (
    SecurityHeadersMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware
)
from portfolio_manager.core.pagination import NEXT_CURSOR_HEADER
from portfolio_manager.routers import holdings, market_data, portfolios, stocks, transactions

setup_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)
logger = get_logger(__name__)


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Portfolio valuation and allocation API",
    docs_url=f"{settings.API_V1_STR}/docs",
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
    expose_headers=[NEXT_CURSOR_HEADER],
    max_age=3600,
)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    RateLimitMiddleware,
    calls=settings.RATE_LIMIT_PER_MINUTE,
    period=60
)
app.add_middleware(RequestLoggingMiddleware)


for module in (portfolios, holdings, transactions, market_data, stocks):
    app.include_router(module.router, prefix=settings.API_V1_STR)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for monitoring"""
    return {"status": "healthy", "service": settings.PROJECT_NAME}


ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ResourceNotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicateResourceError: status.HTTP_409_CONFLICT,
    ConcurrentUpdateError: status.HTTP_409_CONFLICT,
    QuoteProviderError: status.HTTP_502_BAD_GATEWAY,
}


@app.exception_handler(PortfolioManagerError)
async def portfolio_manager_exception_handler(request: Request, exc: PortfolioManagerError):
    """Translate application errors into status codes with an error body."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    logger.info(
        "Request failed: %s", exc,
        extra={'path': request.url.path, 'error_code': exc.error_code, 'status_code': status_code},
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error_code": exc.error_code},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler to prevent information leakage.
    Never expose internal errors to clients.
    """
    logger.exception("Unhandled exception", extra={'path': request.url.path})

    return JSONResponse(
        status_code=500,
        content={
            "detail": "An internal error occurred. Please try again later.",
            "error_code": "INTERNAL_SERVER_ERROR"
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "portfolio_manager.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
