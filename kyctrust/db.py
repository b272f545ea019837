from typing import Any, Callable, Tuple

from flask import current_app

from config.supabase_schema import column_name, table_name, to_supabase_payload

Queryer = Callable[[Any], Any]


def _ensure_supabase_client() -> Tuple[Any, str | None]:
    """Return the configured Supabase client or an explanatory error.

    Returns:
        tuple: (client, error). When Supabase is unavailable the client will be
        ``None`` and ``error`` will contain a message explaining the failure.
    """

    supabase = current_app.config.get("SUPABASE")
    if not supabase or not hasattr(supabase, "table"):
        return None, (
            "Supabase client is not configured. Set SUPABASE_URL and SUPABASE_"
            "SERVICE_KEY to enable database-backed resources."
        )
    return supabase, None


def fetch_rows(
    identifier: str, queryer: Queryer | None = None
) -> tuple[list[dict] | None, str | None]:
    """Return every row of ``identifier``.

    Args:
        identifier: Logical resource name from ``config.supabase_schema``.
        queryer: Optional callable receiving the base ``select("*")`` query
            and returning the query to execute, typically with filters added.

    Returns:
        tuple[list | None, str | None]: The rows or an error message if the
        query failed.
    """

    supabase, error = _ensure_supabase_client()
    if error:
        return None, error

    try:
        query = supabase.table(table_name(identifier)).select("*")
        if queryer is not None:
            query = queryer(query)
        response = query.execute()
        return response.data or [], None
    except Exception as exc:
        return None, f"Failed to fetch {identifier}: {exc}"


def fetch_active_section(section_name: str) -> tuple[dict | None, str | None]:
    """Return the active landing customization row for ``section_name``."""

    if not section_name:
        return None, "Section name is required"

    supabase, error = _ensure_supabase_client()
    if error:
        return None, error

    try:
        response = (
            supabase.table(table_name("landing_customization"))
            .select(column_name("landing_customization", "id"))
            .eq(column_name("landing_customization", "section_name"), section_name)
            .eq(column_name("landing_customization", "active"), True)
            .limit(1)
            .execute()
        )
        records = response.data or []
        return (records[0] if records else None), None
    except Exception as exc:
        return None, f"Failed to fetch landing section: {exc}"


def insert_row(identifier: str, record: dict) -> tuple[dict | None, str | None]:
    """Insert ``record`` into ``identifier`` and return the stored row."""

    supabase, error = _ensure_supabase_client()
    if error:
        return None, error

    payload = to_supabase_payload(identifier, record)

    try:
        response = supabase.table(table_name(identifier)).insert(payload).execute()
    except Exception as exc:
        return None, f"Failed to create {identifier}: {exc}"

    inserted = response.data or []
    if not inserted:
        return None, f"Failed to create {identifier}: no row returned"
    return inserted[0], None


def update_row(
    identifier: str, row_id: Any, updates: dict
) -> tuple[dict | None, str | None]:
    """Apply ``updates`` to the row identified by ``row_id``.

    Returns ``(None, None)`` when no row matched so callers can tell a
    missing row apart from a backend failure.
    """

    supabase, error = _ensure_supabase_client()
    if error:
        return None, error

    payload = to_supabase_payload(identifier, updates)

    try:
        response = (
            supabase.table(table_name(identifier))
            .update(payload)
            .eq(column_name(identifier, "id"), row_id)
            .execute()
        )
    except Exception as exc:
        return None, f"Failed to update {identifier}: {exc}"

    updated = response.data or []
    return (updated[0] if updated else None), None


def delete_row(identifier: str, row_id: Any) -> tuple[list[dict] | None, str | None]:
    """Delete the row identified by ``row_id`` from ``identifier``."""

    supabase, error = _ensure_supabase_client()
    if error:
        return None, error

    try:
        response = (
            supabase.table(table_name(identifier))
            .delete()
            .eq(column_name(identifier, "id"), row_id)
            .execute()
        )
        return response.data or [], None
    except Exception as exc:
        return None, f"Failed to delete {identifier}: {exc}"
