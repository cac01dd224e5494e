from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from app.api.auth import router as auth_router
from app.api.billing import router as billing_router
from app.api.documents import router as documents_router
from app.api.sharing import router as sharing_router
from app.api.stats import router as stats_router
from app.api.tenancy import router as tenancy_router
from app.errors import register_error_handlers
from app.logging import configure_logging

app = FastAPI(title="DocFlow Billing API")

configure_logging()
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(auth_router)
_include_api_router(tenancy_router)
_include_api_router(documents_router)
_include_api_router(sharing_router)
_include_api_router(billing_router)
_include_api_router(stats_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
