"""Centralised Supabase table and column configuration.

Every resource exposed through the REST API is described here: the backend
table it lives in, the logical-to-actual column mapping, the key used for a
single row in responses, the values injected on create when the caller
omits them and the columns that may be used as list filters.  Deployments
can rename tables or columns through ``SUPABASE_SCHEMA_JSON`` without
touching application logic.  Identifiers with no configuration fall back to
the identifier supplied by the caller.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple


@dataclass(frozen=True)
class SupabaseTable:
    """Configuration for a Supabase table exposed as a resource."""

    name: str
    columns: Mapping[str, str] = field(default_factory=dict)
    singular: str | None = None
    defaults: Mapping[str, Any] = field(default_factory=dict)
    filters: Tuple[str, ...] = ()


ORDER_STATUSES = ("pending", "processing", "completed", "cancelled")


# Default table and column mappings. These act as fallbacks if no environment
# overrides are supplied.
_DEFAULT_SUPABASE_SCHEMA: Dict[str, SupabaseTable] = {
    "services": SupabaseTable(
        name="services",
        columns={
            "id": "id",
            "name": "name",
            "price": "price",
            "description": "description",
            "category": "category",
            "order_index": "order_index",
            "active": "active",
            "created_at": "created_at",
            "updated_at": "updated_at",
        },
        singular="service",
        defaults={"active": True, "order_index": 0, "category": "general"},
        filters=("active", "category"),
    ),
    "orders": SupabaseTable(
        name="orders",
        columns={
            "id": "id",
            "customer_name": "customer_name",
            "service_name": "service_name",
            "notes": "notes",
            "status": "status",
            "archived": "archived",
            "created_at": "created_at",
            "updated_at": "updated_at",
        },
        singular="order",
        defaults={"status": "pending", "archived": False},
        filters=("status", "archived"),
    ),
    "payment_methods": SupabaseTable(
        name="payment_methods",
        columns={
            "id": "id",
            "name": "name",
            "type": "type",
            "details": "details",
            "is_active": "is_active",
            "fees": "fees",
            "limits": "limits",
            "icon": "icon",
            "color": "color",
            "sort_order": "sort_order",
            "instructions": "instructions",
            "created_at": "created_at",
            "updated_at": "updated_at",
        },
        singular="payment_method",
        defaults={"is_active": True, "sort_order": 0},
        filters=("is_active", "type"),
    ),
    "site_settings": SupabaseTable(
        name="site_settings",
        columns={
            "id": "id",
            "title": "title",
            "description": "description",
            "order_notice": "order_notice",
            "whatsapp_number": "whatsapp_number",
            "created_at": "created_at",
            "updated_at": "updated_at",
        },
        singular="site_setting",
    ),
    "page_templates": SupabaseTable(
        name="page_templates",
        columns={
            "id": "id",
            "name": "name",
            "page_type": "page_type",
            "template_data": "template_data",
            "theme_config": "theme_config",
            "custom_css": "custom_css",
            "is_default": "is_default",
            "active": "active",
            "created_at": "created_at",
            "updated_at": "updated_at",
        },
        singular="page_template",
        defaults={"active": True, "is_default": False},
        filters=("page_type", "active"),
    ),
    # Theme rows carry free-form design tokens; no column restriction.
    "themes": SupabaseTable(name="themes", singular="theme"),
    "landing_customization": SupabaseTable(
        name="landing_customization",
        columns={
            "id": "id",
            "section_name": "section_name",
            "content": "content",
            "active": "active",
            "created_at": "created_at",
            "updated_at": "updated_at",
        },
        singular="landing_customization",
        defaults={"active": True},
        filters=("section_name",),
    ),
}


def _normalise_columns(columns: Any) -> Dict[str, str]:
    """Return a string-to-string column mapping from ``columns``."""

    if not isinstance(columns, Mapping):
        return {}
    return {
        str(logical): str(actual)
        for logical, actual in columns.items()
        if isinstance(logical, str) and isinstance(actual, str)
    }


def _load_schema_from_env() -> Dict[str, SupabaseTable]:
    """Build the Supabase schema from environment overrides.

    Overrides may rename a table or replace its column mapping; the singular
    key, defaults and filters of a known resource are kept.
    """

    schema = dict(_DEFAULT_SUPABASE_SCHEMA)

    raw_schema = os.getenv("SUPABASE_SCHEMA_JSON")
    if not raw_schema:
        return schema

    try:
        parsed = json.loads(raw_schema)
    except json.JSONDecodeError:
        return schema

    if not isinstance(parsed, Mapping):
        return schema

    for identifier, entry in parsed.items():
        if not isinstance(identifier, str) or not isinstance(entry, Mapping):
            continue

        name = entry.get("name")
        if not isinstance(name, str) or not name:
            continue

        base = schema.get(identifier)
        if "columns" in entry:
            columns = _normalise_columns(entry.get("columns"))
        else:
            columns = dict(base.columns) if base else {}
        schema[identifier] = SupabaseTable(
            name=name,
            columns=columns,
            singular=base.singular if base else None,
            defaults=dict(base.defaults) if base else {},
            filters=base.filters if base else (),
        )

    return schema


SUPABASE_SCHEMA: Dict[str, SupabaseTable] = _load_schema_from_env()


def resource_names() -> Tuple[str, ...]:
    """Return the identifiers of every configured resource."""

    return tuple(SUPABASE_SCHEMA)


def table_name(identifier: str) -> str:
    """Return the configured Supabase table name for ``identifier``."""

    table = SUPABASE_SCHEMA.get(identifier)
    if table:
        return table.name
    return identifier


def column_name(table_identifier: str, column_identifier: str) -> str:
    """Return the configured column name for ``table_identifier``."""

    table = SUPABASE_SCHEMA.get(table_identifier)
    if table and column_identifier in table.columns:
        return table.columns[column_identifier]
    return column_identifier


def table_columns(table_identifier: str) -> Mapping[str, str]:
    """Return the configured column mapping for ``table_identifier``."""

    table = SUPABASE_SCHEMA.get(table_identifier)
    if table:
        return table.columns
    return {}


def singular_name(table_identifier: str) -> str:
    """Return the response key used for a single ``table_identifier`` row.

    Unconfigured identifiers lose their trailing ``s``.
    """

    table = SUPABASE_SCHEMA.get(table_identifier)
    if table and table.singular:
        return table.singular
    if table_identifier.endswith("s"):
        return table_identifier[:-1]
    return table_identifier


def default_values(table_identifier: str) -> Dict[str, Any]:
    """Return a fresh copy of the create defaults for ``table_identifier``."""

    table = SUPABASE_SCHEMA.get(table_identifier)
    if table:
        return dict(table.defaults)
    return {}


def filter_columns(table_identifier: str) -> Tuple[str, ...]:
    """Return the logical columns usable as equality filters on list."""

    table = SUPABASE_SCHEMA.get(table_identifier)
    if table:
        return table.filters
    return ()


def to_supabase_payload(
    table_identifier: str, payload: Mapping[str, Any]
) -> Dict[str, Any]:
    """Return ``payload`` with keys mapped to Supabase column names."""

    columns = table_columns(table_identifier)
    if not columns:
        return dict(payload)
    return {columns.get(key, key): value for key, value in payload.items()}
