"""Canned table schemas, rendered per dialect.

Auto-increment keys, the integer type name and ``ON UPDATE`` timestamps are
not portable, so each template body is wrapped with dialect-specific pieces.
"""

from typing import NamedTuple

from db_console.exceptions import TemplateNotFound
from db_console.models.config import normalize_dialect
from db_console.models.template import TableTemplate


class _TemplateSource(NamedTuple):
    name: str
    description: str
    # Middle columns; "{int}" is replaced by the dialect's integer type
    body: str


_ID_COLUMN = {
    "mysql": "id INT AUTO_INCREMENT PRIMARY KEY",
    "postgresql": "id SERIAL PRIMARY KEY",
}

_INTEGER_TYPE = {"mysql": "INT", "postgresql": "INTEGER"}

_TIMESTAMP_COLUMNS = {
    "mysql": (
        "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP, "
        "updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP"
    ),
    "postgresql": (
        "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP, "
        "updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP"
    ),
}

TEMPLATES: dict[str, _TemplateSource] = {
    "users": _TemplateSource(
        "Users",
        "Basic user table with authentication fields",
        "username VARCHAR(50) UNIQUE NOT NULL, email VARCHAR(100) UNIQUE NOT NULL, "
        "password_hash VARCHAR(255) NOT NULL, first_name VARCHAR(50), "
        "last_name VARCHAR(50)",
    ),
    "posts": _TemplateSource(
        "Posts",
        "Blog posts table with content and metadata",
        "title VARCHAR(255) NOT NULL, content TEXT, slug VARCHAR(255) UNIQUE, "
        "author_id {int}, status VARCHAR(20) DEFAULT 'draft'",
    ),
    "products": _TemplateSource(
        "Products",
        "E-commerce products table",
        "name VARCHAR(255) NOT NULL, description TEXT, "
        "price DECIMAL(10,2) NOT NULL, sku VARCHAR(100) UNIQUE, "
        "category_id {int}, stock_quantity {int} DEFAULT 0, "
        "is_active BOOLEAN DEFAULT true",
    ),
    "orders": _TemplateSource(
        "Orders",
        "Order management table",
        "order_number VARCHAR(50) UNIQUE NOT NULL, customer_id {int}, "
        "total_amount DECIMAL(10,2) NOT NULL, status VARCHAR(20) DEFAULT 'pending', "
        "shipping_address TEXT, billing_address TEXT",
    ),
    "categories": _TemplateSource(
        "Categories",
        "Category classification table",
        "name VARCHAR(100) NOT NULL, slug VARCHAR(100) UNIQUE, description TEXT, "
        "parent_id {int}, sort_order {int} DEFAULT 0, is_active BOOLEAN DEFAULT true",
    ),
}


def _render(source: _TemplateSource, dialect: str) -> TableTemplate:
    schema = ", ".join(
        [
            _ID_COLUMN[dialect],
            source.body.format(int=_INTEGER_TYPE[dialect]),
            _TIMESTAMP_COLUMNS[dialect],
        ]
    )
    return TableTemplate(
        name=source.name, description=source.description, schema=schema
    )


def get_templates(dialect: str) -> dict[str, TableTemplate]:
    """All templates rendered for ``dialect``, keyed by template key."""
    dialect = normalize_dialect(dialect)
    return {key: _render(source, dialect) for key, source in TEMPLATES.items()}


def get_template(key: str, dialect: str) -> TableTemplate:
    """
    One template rendered for ``dialect``.

    Raises:
        TemplateNotFound: If ``key`` is not a known template
    """
    source = TEMPLATES.get(key)
    if source is None:
        raise TemplateNotFound(
            f"Unknown table template '{key}'. Available: {', '.join(TEMPLATES)}",
            context={"template": key},
        )
    return _render(source, normalize_dialect(dialect))
