from fastapi import APIRouter
from sqlalchemy import text

router = APIRouter()


@router.get("/health")
def health_check():
    """Check service health including DB connectivity."""
    db_ok = False

    try:
        from app.database import engine
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        pass

    return {"status": "ok", "db": db_ok}
