import os

# Set a dummy DATABASE_URL before any imports so the lazy engine doesn't need psycopg2
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from sqlalchemy.orm import configure_mappers  # noqa: E402

# Import all models to register them with the mapper
from app.models.receipt import Receipt  # noqa: E402, F401
from app.models.statement import Statement, Charge  # noqa: E402, F401
from app.models.skip_record import SkipRecord  # noqa: E402, F401

# Configure all mappers so InstrumentedAttribute.impl is populated
configure_mappers()
