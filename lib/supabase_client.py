# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations.
# It implements the singleton pattern to reuse a single client connection
# and provides small table helpers used by every service:
# - fetch_one / fetch_many / count for reads
# - insert_one / update_where / delete_where for writes
# - rpc for the Postgres functions the marketplace relies on
#   (get_or_create_conversation, update_braider_rating_stats, ...)
#
# Filters are passed as keyword arguments. A list/tuple/set value becomes an
# IN filter, anything else an equality filter.
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   braider = SupabaseClient.fetch_one("braiders", id=braider_id)
# =============================================================================

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from supabase import create_client, Client

from app.config import settings

# Set up logging for this module
logger = logging.getLogger(__name__)


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Carries a code and a suggestion so callers can tell HOW to fix the
    problem, not just WHAT failed.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    Implements singleton pattern - one client instance is shared across
    the application. All methods are class methods for easy access without
    instantiation.

    Example:
        booking = SupabaseClient.fetch_one("bookings", id=booking_id)
        slots = SupabaseClient.fetch_many(
            "braider_availability",
            braider_id=braider_id,
            is_booked=False,
            order_by="available_date",
        )
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS), so
        every service must enforce ownership itself.

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    @classmethod
    def _normalize_uuid(cls, uuid_value: str | UUID) -> str:
        """Convert UUID to string for queries."""
        return str(uuid_value) if isinstance(uuid_value, UUID) else uuid_value

    @classmethod
    def _apply_filters(cls, query: Any, filters: dict[str, Any]) -> Any:
        for column, value in filters.items():
            if isinstance(value, (list, tuple, set)):
                query = query.in_(column, [cls._normalize_uuid(v) for v in value])
            else:
                query = query.eq(column, cls._normalize_uuid(value))
        return query

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_one(
        cls,
        table: str,
        columns: str = "*",
        **filters: Any,
    ) -> dict[str, Any] | None:
        """
        Fetch the first row matching all filters.

        Returns:
            Row dict, or None if nothing matches

        Raises:
            SupabaseClientError: If the query fails
        """
        client = cls.get_client()

        try:
            query = cls._apply_filters(client.table(table).select(columns), filters)
            response = query.limit(1).execute()
            rows = response.data or []
            return rows[0] if rows else None

        except Exception as e:
            # PostgREST code for no rows
            if "PGRST116" in str(e):
                return None
            raise SupabaseClientError(
                message=f"Failed to fetch from {table}: {e}",
                code="FETCH_FAILED",
                suggestion=f"Check that the {table} table is accessible",
                details={"table": table, "filters": {k: str(v) for k, v in filters.items()}},
            )

    @classmethod
    def fetch_many(
        cls,
        table: str,
        columns: str = "*",
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
        **filters: Any,
    ) -> list[dict[str, Any]]:
        """
        Fetch all rows matching the filters.

        Args:
            table: Table name
            columns: Column list for select()
            order_by: Optional column to sort on
            descending: Sort direction
            limit: Page size (None = no paging)
            offset: Rows to skip when limit is set
            **filters: Equality / IN filters

        Raises:
            SupabaseClientError: If the query fails
        """
        client = cls.get_client()

        try:
            query = cls._apply_filters(client.table(table).select(columns), filters)
            if order_by:
                query = query.order(order_by, desc=descending)
            if limit is not None:
                query = query.range(offset, offset + limit - 1)
            response = query.execute()
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch from {table}: {e}",
                code="FETCH_FAILED",
                suggestion=f"Check that the {table} table is accessible",
                details={"table": table},
            )

    @classmethod
    def count(cls, table: str, **filters: Any) -> int:
        """Count rows matching the filters."""
        client = cls.get_client()

        try:
            query = cls._apply_filters(client.table(table).select("id", count="exact"), filters)
            response = query.execute()
            return response.count or 0

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to count {table}: {e}",
                code="COUNT_FAILED",
                details={"table": table},
            )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @classmethod
    def insert_one(cls, table: str, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a row and return it as stored.

        Raises:
            SupabaseClientError: If the insert fails or returns nothing
        """
        client = cls.get_client()

        try:
            response = client.table(table).insert(data).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to insert into {table}: {e}",
                code="INSERT_FAILED",
                suggestion="Check required columns and constraints",
                details={"table": table},
            )

        if not response.data:
            raise SupabaseClientError(
                message=f"Insert into {table} returned no data",
                code="INSERT_FAILED",
                details={"table": table},
            )

        logger.debug(f"Inserted row into {table}: {response.data[0].get('id')}")
        return response.data[0]

    @classmethod
    def update_where(cls, table: str, data: dict[str, Any], **filters: Any) -> list[dict[str, Any]]:
        """
        Update all rows matching the filters.

        Returns:
            The updated rows (empty if nothing matched)
        """
        if not filters:
            raise SupabaseClientError(
                message=f"Refusing to update {table} without filters",
                code="UNSAFE_UPDATE",
            )

        client = cls.get_client()

        try:
            query = cls._apply_filters(client.table(table).update(data), filters)
            response = query.execute()
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update {table}: {e}",
                code="UPDATE_FAILED",
                details={"table": table},
            )

    @classmethod
    def delete_where(cls, table: str, **filters: Any) -> list[dict[str, Any]]:
        """Delete all rows matching the filters."""
        if not filters:
            raise SupabaseClientError(
                message=f"Refusing to delete from {table} without filters",
                code="UNSAFE_DELETE",
            )

        client = cls.get_client()

        try:
            query = cls._apply_filters(client.table(table).delete(), filters)
            response = query.execute()
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to delete from {table}: {e}",
                code="DELETE_FAILED",
                details={"table": table},
            )

    # -------------------------------------------------------------------------
    # Stored Procedures
    # -------------------------------------------------------------------------

    @classmethod
    def rpc(cls, function: str, params: dict[str, Any] | None = None) -> Any:
        """
        Call a Postgres function through PostgREST.

        Returns:
            Whatever the function returns (scalar, row or list of rows)
        """
        client = cls.get_client()

        try:
            response = client.rpc(function, params or {}).execute()
            return response.data

        except Exception as e:
            raise SupabaseClientError(
                message=f"RPC {function} failed: {e}",
                code="RPC_FAILED",
                suggestion=f"Check that the {function} function exists in the database",
                details={"function": function},
            )

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_user(cls, user_id: str | UUID) -> dict[str, Any] | None:
        """Fetch a row from public.users by id."""
        return cls.fetch_one("users", id=user_id)
