"""
Script to create all database tables.

This script creates all tables defined in the models.
Run this after starting PostgreSQL with Docker.
"""
import asyncio
from formhooks.config import settings
from formhooks.database import create_engine
from formhooks.models.base import Base
# Import all models to register them with Base
from formhooks.models import form, notification, user_settings  # noqa: F401


async def create_all_tables():
    """Create all tables in the database."""
    engine = create_engine(settings.DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print("All tables created successfully!")


async def main():
    """Main entry point."""
    print("Creating database tables...")
    await create_all_tables()
    print("Done!")


if __name__ == "__main__":
    asyncio.run(main())
