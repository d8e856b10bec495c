from fastapi import FastAPI

from app.routers import analytics, health, matching
from app.models import receipt as receipt_models  # noqa: F401 - ensures models are registered
from app.models import statement as statement_models  # noqa: F401
from app.models import skip_record as skip_record_models  # noqa: F401

app = FastAPI(title="Receipt Matching", version="1.0.0")

# Include API routers
app.include_router(matching.router, prefix="/matching", tags=["matching"])
app.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
app.include_router(health.router, tags=["health"])
