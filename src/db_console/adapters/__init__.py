"""Dialect drivers for the supported backend families."""

from sqlalchemy.engine.url import make_url

from .base import BaseAdapter
from .mysql import MySQLAdapter
from .postgresql import PostgresAdapter
from ..models.config import normalize_dialect

__all__ = [
    "BaseAdapter",
    "MySQLAdapter",
    "PostgresAdapter",
    "create_adapter",
    "detect_dialect",
]


def detect_dialect(url: str) -> str:
    """
    Detect database dialect from connection URL.

    Args:
        url: Database connection URL

    Returns:
        Dialect name (mysql, postgresql)

    Raises:
        ValueError: If dialect cannot be detected or is unsupported
    """
    try:
        parsed_url = make_url(url)
    except Exception as e:
        raise ValueError(f"Failed to detect dialect from URL: {e}")
    return normalize_dialect(parsed_url.drivername)


def create_adapter(dialect: str) -> BaseAdapter:
    """
    Factory function to create the dialect driver.

    Args:
        dialect: Dialect name or alias (mysql, mariadb, postgres, ...)

    Raises:
        ValueError: If the dialect is not supported
    """
    adapters = {
        "postgresql": PostgresAdapter,
        "mysql": MySQLAdapter,
    }
    return adapters[normalize_dialect(dialect)]()
