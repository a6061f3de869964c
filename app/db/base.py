from sqlalchemy.orm import declarative_base

Base = declarative_base()


def normalize_database_url(url: str) -> str:
    """Normalize PostgreSQL URL to use psycopg3 driver.

    SQLite URLs (used in tests) are returned unchanged.
    """
    if url.startswith("postgresql://") and "+psycopg" not in url:
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url
