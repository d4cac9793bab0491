from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from portal.config import settings
from portal.api.v1 import auth, notifications, transfer, referral, payment
from portal.api.v1 import settings as public_settings
from portal.api.v1 import admin_auth, admin_settings, admin_transfers, admin_referrals, admin_users
import logging

# Configure logging
if not settings.DEBUG:
    from portal.utils.logging_config import root_logger
    logger = logging.getLogger(__name__)
else:
    logger = logging.getLogger(__name__)

# Determine docs URLs based on environment
docs_url = "/docs" if settings.DEBUG else None
redoc_url = "/redoc" if settings.DEBUG else None

app = FastAPI(
    title=settings.APP_NAME,
    description="Job Portal wallet, payout and referral backend API",
    version=settings.APP_VERSION,
    docs_url=docs_url,
    redoc_url=redoc_url,
    openapi_url="/openapi.json" if settings.DEBUG else None
)

# CORS Middleware
if settings.ENVIRONMENT == "production":
    # In production, use specific origins
    origins = settings.ALLOWED_ORIGINS.split(",") if settings.ALLOWED_ORIGINS else []
    if not origins:
        logger.warning("No ALLOWED_ORIGINS set in production!")
else:
    # In development, allow all
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# Exception Handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Business errors: {success: false, message}"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors"""
    # Convert errors to JSON-serializable format
    def sanitize_error(error):
        if isinstance(error, dict):
            return {k: sanitize_error(v) for k, v in error.items()}
        elif isinstance(error, list):
            return [sanitize_error(item) for item in error]
        elif isinstance(error, bytes):
            return error.decode('utf-8', errors='replace')
        elif isinstance(error, (str, int, float, bool, type(None))):
            return error
        else:
            return str(error)

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": "Validation error",
            "error": {
                "code": "VALIDATION_ERROR",
                "details": sanitize_error(exc.errors())
            }
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Internal server error",
            "error": {
                "code": "SERVER_ERROR",
                "details": str(exc) if settings.DEBUG else "An error occurred"
            }
        }
    )


# Include Routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(transfer.router, prefix="/api/transfer", tags=["Transfers"])
app.include_router(referral.router, prefix="/api/referral", tags=["Referrals"])
app.include_router(payment.router, prefix="/api/payment", tags=["Payments"])
app.include_router(public_settings.router, prefix="/api/settings", tags=["Settings"])

# Admin Routers
app.include_router(admin_auth.router, prefix="/admin/auth", tags=["Admin Authentication"])
app.include_router(admin_settings.router, prefix="/admin/settings", tags=["Admin Settings"])
app.include_router(admin_transfers.router, prefix="/admin/transfer-requests", tags=["Admin Transfer Requests"])
app.include_router(admin_referrals.router, prefix="/admin/referrals", tags=["Admin Referrals"])
app.include_router(admin_users.router, prefix="/admin/users", tags=["Admin Users"])


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": f"{settings.APP_NAME} is running",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME
    }
