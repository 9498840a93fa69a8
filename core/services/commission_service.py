# =============================================================================
# core/services/commission_service.py - Commissions & Earnings
# =============================================================================
# Every completed booking produces a platform_transactions row holding the
# service amount, the commission owed to the platform and the braider payout.
# This service aggregates those rows:
# - admin_commission_report: per-braider totals and platform-wide stats
# - process_payments: mark pending commissions as settled
# - braider_earnings: a braider's own dashboard figures
#
# The commission rate lives in platform_settings (key/value rows).
# =============================================================================

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import OwnershipError
from core.roles import UserRole
from lib.supabase_client import SupabaseClient
from lib.utils import add_months, month_start, parse_datetime, round_money, to_iso, utc_now

logger = logging.getLogger(__name__)


def _in_month(row: dict[str, Any], start: datetime) -> bool:
    created = parse_datetime(row.get("created_at"))
    return created is not None and created.year == start.year and created.month == start.month


def _sum(rows: list[dict[str, Any]], column: str) -> float:
    return sum(float(r.get(column) or 0) for r in rows)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


class CommissionService:
    """
    Service for commission reporting and braider earnings.
    """

    @staticmethod
    def get_platform_settings() -> dict[str, Any]:
        """
        Read commission settings.

        Returns:
            {"commission_rate": float, "monetization_enabled": bool}
        """
        rows = SupabaseClient.fetch_many(
            "platform_settings",
            columns="key, value",
            key=["commission_rate", "monetization_enabled"],
        )
        values = {r["key"]: r.get("value") for r in rows}

        rate = values.get("commission_rate")
        return {
            "commission_rate": float(rate) if rate not in (None, "") else settings.DEFAULT_COMMISSION_RATE,
            "monetization_enabled": _as_bool(values.get("monetization_enabled", False)),
        }

    @staticmethod
    def admin_commission_report(now: datetime | None = None) -> dict[str, Any]:
        """
        Build the admin commissions dashboard.

        Returns:
            {"stats": {...}, "braiders": [...]}
        """
        now = now or utc_now()
        current_month = month_start(now)
        platform = CommissionService.get_platform_settings()

        braiders = SupabaseClient.fetch_many(
            "braiders",
            columns="id, name, contact_email, profile_image_url, status, created_at",
            status="approved",
        )
        braider_ids = [b["id"] for b in braiders]
        transactions = (
            SupabaseClient.fetch_many("platform_transactions", braider_id=braider_ids)
            if braider_ids else []
        )

        report = []
        for braider in braiders:
            own = [t for t in transactions if t.get("braider_id") == braider["id"]]
            this_month = [t for t in own if _in_month(t, current_month)]

            paid = sorted(
                (t for t in own if t.get("status") == "completed" and t.get("processed_at")),
                key=lambda t: parse_datetime(t["processed_at"]),
                reverse=True,
            )
            last_payment = str(paid[0]["processed_at"]).split("T")[0] if paid else None

            report.append({
                "id": braider["id"],
                "name": braider.get("name"),
                "email": braider.get("contact_email") or "",
                "profile_image": braider.get("profile_image_url"),
                "status": "active" if braider.get("status") == "approved" else "pending",
                "joined_at": str(braider.get("created_at") or "").split("T")[0] or None,
                "total_bookings": len(own),
                "completed_bookings": sum(1 for t in own if t.get("status") == "completed"),
                "total_revenue": round_money(_sum(own, "service_amount")),
                "total_commissions": round_money(_sum(own, "commission_amount")),
                "current_month_revenue": round_money(_sum(this_month, "service_amount")),
                "current_month_commissions": round_money(_sum(this_month, "commission_amount")),
                "last_payment": last_payment,
            })

        total_commissions = sum(b["total_commissions"] for b in report)
        total_braiders = len(report)

        stats = {
            "total_commissions": round_money(total_commissions),
            "monthly_commissions": round_money(sum(b["current_month_commissions"] for b in report)),
            "total_braiders": total_braiders,
            "active_braiders": sum(1 for b in report if b["status"] == "active"),
            "pending_payments": sum(1 for b in report if not b["last_payment"] and b["total_commissions"] > 0),
            "average_commission": round_money(total_commissions / total_braiders) if total_braiders else 0.0,
            "commission_rate": platform["commission_rate"],
            "monetization_enabled": platform["monetization_enabled"],
        }

        return {"stats": stats, "braiders": report}

    @staticmethod
    def process_payments(braider_ids: list[str], transaction_ids: list[str]) -> int:
        """
        Settle pending commissions.

        Only rows matching BOTH lists and still pending are updated.

        Returns:
            Number of transactions marked completed
        """
        if not braider_ids or not transaction_ids:
            return 0

        now = to_iso(utc_now())
        rows = SupabaseClient.update_where(
            "platform_transactions",
            {"status": "completed", "processed_at": now, "updated_at": now},
            braider_id=braider_ids,
            id=transaction_ids,
            status="pending",
        )
        logger.info(f"Processed {len(rows)} commission payments")
        return len(rows)

    @staticmethod
    def braider_earnings(
        user_id: UUID | str,
        role: str | None,
        braider_id: str,
        user_email: str | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Earnings dashboard for one braider.

        Owners (by user_id or contact_email) and admins may read it.
        """
        now = now or utc_now()
        platform = CommissionService.get_platform_settings()

        braider = SupabaseClient.fetch_one("braiders", columns="id, name, contact_email, user_id", id=braider_id)
        if not braider:
            return {
                "braider_id": braider_id,
                "total_earnings": 0.0,
                "monthly_earnings": 0.0,
                "pending_commissions": 0.0,
                "platform_commission": 0.0,
                "net_earnings": 0.0,
                "last_payment": None,
                "monthly_comparison": 0.0,
                "services_completed": 0,
                "average_service_value": 0.0,
                "commission_rate": platform["commission_rate"],
                "monetization_enabled": platform["monetization_enabled"],
                "transactions": [],
                "message": "Braider not found, showing empty earnings",
            }

        is_owner = str(braider.get("user_id")) == str(user_id) or (
            user_email is not None and braider.get("contact_email") == user_email
        )
        if role != UserRole.ADMIN.value and not is_owner:
            logger.error(f"SECURITY VIOLATION: user {user_id} requested earnings of braider {braider_id}")
            raise OwnershipError(
                "You can only view your own earnings",
                details={"violation": "earnings_access_denied", "braider_id": braider_id},
            )

        transactions = SupabaseClient.fetch_many(
            "platform_transactions",
            order_by="created_at",
            descending=True,
            braider_id=braider_id,
        )

        current_month = month_start(now)
        previous_month = add_months(current_month, -1)
        this_month = [t for t in transactions if _in_month(t, current_month)]
        last_month = [t for t in transactions if _in_month(t, previous_month)]

        monthly_earnings = _sum(this_month, "service_amount")
        monthly_commissions = _sum(this_month, "commission_amount")
        net_earnings = monthly_earnings - monthly_commissions
        last_month_payout = _sum(last_month, "braider_payout")
        comparison = (
            (net_earnings - last_month_payout) / last_month_payout * 100
            if last_month_payout > 0 else 0.0
        )
        services_completed = sum(1 for t in this_month if t.get("status") == "completed")

        paid = [t for t in transactions if t.get("status") == "completed" and t.get("processed_at")]
        last_payment = (
            {"amount": float(paid[0].get("braider_payout") or 0), "date": paid[0]["processed_at"], "status": "completed"}
            if paid else None
        )

        return {
            "braider_id": braider_id,
            "total_earnings": round_money(_sum(transactions, "braider_payout")),
            "monthly_earnings": round_money(monthly_earnings),
            "pending_commissions": round_money(
                _sum([t for t in transactions if t.get("status") == "pending"], "braider_payout")
            ),
            "platform_commission": round_money(monthly_commissions),
            "net_earnings": round_money(net_earnings),
            "last_payment": last_payment,
            "monthly_comparison": round_money(comparison),
            "services_completed": services_completed,
            "average_service_value": round_money(monthly_earnings / services_completed) if services_completed else 0.0,
            "commission_rate": platform["commission_rate"],
            "monetization_enabled": platform["monetization_enabled"],
            "transactions": [
                {
                    "id": t["id"],
                    "date": t.get("created_at"),
                    "service_amount": t.get("service_amount"),
                    "commission_rate": t.get("commission_rate"),
                    "commission_amount": t.get("commission_amount"),
                    "net_earnings": t.get("braider_payout"),
                    "status": t.get("status"),
                    "payment_date": t.get("processed_at"),
                }
                for t in this_month
            ],
        }
