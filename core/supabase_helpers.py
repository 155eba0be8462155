# core/supabase_helpers.py

from typing import Optional

from fastapi import HTTPException
from supabase import Client

from core.errors import handle_supabase_error
from core.logging_config import logger


# =================================================================
#  ROW HELPERS: single-row reads and writes by primary key
# =================================================================
# All helpers raise HTTPException; database errors are translated by
# core.errors.handle_supabase_error (409 on unique / FK violations, ...).
# =================================================================

def fetch_by_id(client: Client, table: str, row_id, columns: str = "*") -> Optional[dict]:
    """Row with `id = row_id`, or None."""
    try:
        rows = (
            client.table(table)
            .select(columns)
            .eq("id", row_id)
            .limit(1)
            .execute()
        ).data
    except Exception as e:
        raise handle_supabase_error(e, f"Failed to fetch from {table}")

    return rows[0] if rows else None


def get_or_404(client: Client, table: str, row_id, label: str, columns: str = "*") -> dict:
    row = fetch_by_id(client, table, row_id, columns)
    if row is None:
        raise HTTPException(404, f"{label} not found")
    return row


def insert_row(client: Client, table: str, data: dict, operation: Optional[str] = None) -> dict:
    operation = operation or f"Failed to insert into {table}"
    try:
        result = client.table(table).insert(data).execute()
    except Exception as e:
        raise handle_supabase_error(e, operation)

    if not result.data:
        raise HTTPException(500, f"{operation}: no row returned")
    return result.data[0]


def update_row(client: Client, table: str, row_id, data: dict, operation: Optional[str] = None) -> dict:
    operation = operation or f"Failed to update {table}"
    try:
        result = client.table(table).update(data).eq("id", row_id).execute()
    except Exception as e:
        raise handle_supabase_error(e, operation)

    if not result.data:
        raise HTTPException(404, f"{operation}: Resource not found")
    return result.data[0]


def delete_row(client: Client, table: str, row_id, operation: Optional[str] = None):
    operation = operation or f"Failed to delete from {table}"
    try:
        client.table(table).delete().eq("id", row_id).execute()
    except Exception as e:
        raise handle_supabase_error(e, operation)


# =================================================================
#  AUTH ADMIN HELPERS
# =================================================================
# An account is a Supabase Auth user plus its public.users row.
# The users row is upserted because a database trigger may already
# have created it from the auth user.
# =================================================================

def create_account(client: Client, email: str, password: str, profile: dict, operation: str = "Failed to create user") -> dict:
    """
    Create a confirmed auth user and its users row. The auth user is
    removed again when the row cannot be written.
    """
    try:
        result = client.auth.admin.create_user(
            {
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {k: profile.get(k) for k in ("role", "name", "surname")},
            }
        )
    except Exception as e:
        raise handle_supabase_error(e, operation)

    user_id = getattr(result.user, "id", None)
    if not user_id:
        raise HTTPException(500, f"{operation}: no user returned")

    row = {**profile, "id": user_id, "email": email}
    try:
        saved = client.table("users").upsert(row, on_conflict="id").execute()
    except Exception as e:
        delete_auth_user(client, user_id)
        raise handle_supabase_error(e, operation)

    return saved.data[0] if saved.data else row


def delete_auth_user(client: Client, user_id: str):
    """Best-effort rollback of an auth user."""
    try:
        client.auth.admin.delete_user(user_id)
    except Exception as e:
        logger.error(f"Could not remove auth user {user_id} after a failed create: {e}")
