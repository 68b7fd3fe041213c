import asyncio
from urllib.parse import urlparse, urlunparse

import asyncpg

from timebank.config import settings


def split_dsn(dsn: str) -> tuple[str, str]:
    """DSN служебной БД postgres и имя целевой БД."""
    parsed = urlparse(dsn)
    db_name = parsed.path.lstrip("/") or "timebank"
    return urlunparse(parsed._replace(path="/postgres")), db_name


async def create_db():
    admin_dsn, db_name = split_dsn(settings.database.dsn)
    try:
        # Connect to default postgres DB to create new DB
        sys_conn = await asyncpg.connect(dsn=admin_dsn)

        exists = await sys_conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", db_name)
        if not exists:
            print(f"Creating database {db_name}...")
            await sys_conn.execute(f'CREATE DATABASE "{db_name}"')
            print("Database created.")
        else:
            print(f"Database {db_name} already exists.")

        await sys_conn.close()

    except (OSError, asyncpg.PostgresError) as e:
        print(f"Error: {e}")


if __name__ == "__main__":
    asyncio.run(create_db())
