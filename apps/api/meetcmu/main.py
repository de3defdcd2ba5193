from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import SQLAlchemyError

from meetcmu.api.errors import database_error_handler
from meetcmu.api.router import router as api_router
from meetcmu.core.config import settings
from meetcmu.core.logging import configure_logging
from meetcmu.middleware.rate_limit import RateLimitMiddleware
from meetcmu.middleware.request_id import RequestIdMiddleware
from meetcmu.middleware.security_headers import SecurityHeadersMiddleware

configure_logging()

app = FastAPI(title="MeetCMU API")

# Starlette runs the last added middleware first (outermost):
# request id and security headers wrap everything, CORS answers preflight,
# rate limiting sits closest to the routes.
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(SQLAlchemyError, database_error_handler)

Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/")
def root():
    return {"name": "MeetCMU API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(api_router, prefix="/api")
