# storefront/utils/database.py

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from storefront.config import settings

# ────────────── Base for models ──────────────
Base = declarative_base()

# ────────────── Database URL ──────────────
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# ────────────── Async engine ──────────────
engine = create_async_engine(
    SQLALCHEMY_DATABASE_URL,
    echo=False  # True to print SQL
)


# SQLite does not enforce foreign keys unless asked to, per connection
if engine.dialect.name == "sqlite":
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# ────────────── Async session ──────────────
AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)


# ────────────── Database initialisation ──────────────
async def init_db():
    """
    Creates all tables (orders, order_items) if they do not exist yet.
    """
    from storefront.models import order  # noqa: F401  registers the models on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db():
    """Drops all tables. Used by the test suite."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
