# =============================================================================
# core/services/promotion_stats_service.py - Promotion Analytics & Revenue
# =============================================================================
# Read-only aggregates over promotions and promotion_transactions:
# - analytics_summary: counters of the user's promotions (all of them for admins)
# - admin_stats: the admin promotions dashboard
# - revenue_report: paid promotion revenue by period
#
# PostgREST range filters aren't exposed by SupabaseClient, so periods are
# computed here over the fetched rows.
# =============================================================================

import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from core.models.promotion import PromotionStatus, TransactionStatus
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import parse_datetime, round_money, to_iso, utc_now

logger = logging.getLogger(__name__)

DASHBOARD_LIST_SIZE = 10
EXPIRING_WINDOW = timedelta(days=7)


def _created_between(row: dict[str, Any], start: datetime, end: datetime | None = None) -> bool:
    created = parse_datetime(row.get("created_at"))
    if created is None or created < start:
        return False
    return end is None or created < end


def _growth(current: float, previous: float) -> float:
    """Percent change, 100 when there is nothing to compare against."""
    if previous > 0:
        return round((current - previous) / previous * 100, 1)
    return 100.0 if current > 0 else 0.0


def _total(rows: list[dict[str, Any]]) -> float:
    return round_money(sum(float(row.get("amount") or 0) for row in rows))


def _newest(rows: list[dict[str, Any]], limit: int = DASHBOARD_LIST_SIZE) -> list[dict[str, Any]]:
    return sorted(rows, key=lambda r: str(r.get("created_at") or ""), reverse=True)[:limit]


class PromotionStatsService:
    """
    Service for promotion analytics.
    """

    @staticmethod
    def analytics_summary(user_id: UUID | str, is_admin: bool = False) -> dict[str, int]:
        filters: dict[str, Any] = {} if is_admin else {"user_id": str(user_id)}
        promotions = SupabaseClient.fetch_many(
            "promotions",
            columns="views_count, clicks_count, contacts_count, type, status",
            **filters,
        )
        return {
            "total_views": sum(p.get("views_count") or 0 for p in promotions),
            "total_clicks": sum(p.get("clicks_count") or 0 for p in promotions),
            "total_contacts": sum(p.get("contacts_count") or 0 for p in promotions),
            "total_promotions": len(promotions),
            "active_promotions": sum(1 for p in promotions if p.get("status") == PromotionStatus.ACTIVE.value),
        }

    # -------------------------------------------------------------------------
    # Admin dashboard
    # -------------------------------------------------------------------------

    @staticmethod
    def _system_stats(promotions: list[dict[str, Any]], now: datetime) -> dict[str, Any]:
        """
        Headline numbers from the get_promotion_system_stats function, or
        computed from the rows when the function isn't installed.
        """
        try:
            stats = SupabaseClient.rpc("get_promotion_system_stats")
            if stats:
                return stats
        except SupabaseClientError as e:
            logger.info(f"get_promotion_system_stats unavailable, computing stats: {e.message}")

        transactions = SupabaseClient.fetch_many(
            "promotion_transactions",
            columns="amount",
            status=TransactionStatus.COMPLETED.value,
        )
        revenue = _total(transactions)
        views = sum(p.get("views_count") or 0 for p in promotions)
        clicks = sum(p.get("clicks_count") or 0 for p in promotions)

        return {
            "total_promotions": len(promotions),
            "active_promotions": sum(1 for p in promotions if p.get("status") == PromotionStatus.ACTIVE.value),
            "total_revenue": revenue,
            "total_views": views,
            "total_clicks": clicks,
            "ctr_percentage": round(clicks / views * 100, 2) if views else 0.0,
            "avg_revenue_per_promotion": round_money(revenue / len(promotions)) if promotions else 0.0,
            "generated_at": to_iso(now),
        }

    @staticmethod
    def admin_stats(now: datetime | None = None) -> dict[str, Any]:
        """
        Build the admin promotions dashboard.

        Returns:
            {"stats", "pending_promotions", "expiring_promotions",
             "recent_promotions", "top_performers", "stats_by_type", "growth"}
        """
        now = now or utc_now()
        promotions = SupabaseClient.fetch_many("promotions")

        expiring = []
        for promotion in promotions:
            end = parse_datetime(promotion.get("end_date"))
            if (
                promotion.get("status") == PromotionStatus.ACTIVE.value
                and end is not None
                and now <= end <= now + EXPIRING_WINDOW
            ):
                expiring.append(promotion)
        expiring.sort(key=lambda p: parse_datetime(p["end_date"]))

        top_performers = sorted(
            (p for p in promotions if (p.get("views_count") or 0) > 0),
            key=lambda p: p["views_count"],
            reverse=True,
        )[:DASHBOARD_LIST_SIZE]

        by_type: dict[str, dict[str, int]] = {}
        for promotion in promotions:
            counts = by_type.setdefault(promotion.get("type") or "unknown", {})
            status = promotion.get("status") or "unknown"
            counts[status] = counts.get(status, 0) + 1

        recent = sum(1 for p in promotions if _created_between(p, now - timedelta(days=30)))
        previous = sum(
            1 for p in promotions
            if _created_between(p, now - timedelta(days=60), now - timedelta(days=30))
        )

        return {
            "stats": PromotionStatsService._system_stats(promotions, now),
            "pending_promotions": _newest([p for p in promotions if p.get("status") == PromotionStatus.PENDING.value]),
            "expiring_promotions": expiring[:DASHBOARD_LIST_SIZE],
            "recent_promotions": _newest(promotions),
            "top_performers": top_performers,
            "stats_by_type": by_type,
            "growth": {
                "recent_count": recent,
                "previous_count": previous,
                "growth_percentage": _growth(recent, previous),
            },
        }

    @staticmethod
    def revenue_report(now: datetime | None = None) -> dict[str, Any]:
        """
        Revenue of completed promotion payments.

        Periods are rolling: the last 30 days against the 30 before, the last
        7 days against the 7 before, and today since midnight UTC.
        """
        now = now or utc_now()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        month = today - timedelta(days=30)
        week = today - timedelta(days=7)

        transactions = SupabaseClient.fetch_many(
            "promotion_transactions",
            status=TransactionStatus.COMPLETED.value,
        )

        monthly = _total([t for t in transactions if _created_between(t, month)])
        last_month = _total([t for t in transactions if _created_between(t, month - timedelta(days=30), month)])
        weekly = _total([t for t in transactions if _created_between(t, week)])
        last_week = _total([t for t in transactions if _created_between(t, week - timedelta(days=7), week)])
        monthly_growth = _growth(monthly, last_month)

        promotion_ids = list({t["promotion_id"] for t in transactions if t.get("promotion_id")})
        promotions = {
            p["id"]: p
            for p in (
                SupabaseClient.fetch_many("promotions", columns="id, type, user_id", id=promotion_ids)
                if promotion_ids else []
            )
        }

        def package_type(transaction: dict[str, Any]) -> str:
            if (transaction.get("metadata") or {}).get("combo_id"):
                return "combo"
            return promotions.get(transaction.get("promotion_id"), {}).get("type") or "unknown"

        packages: dict[str, dict[str, Any]] = {}
        for transaction in transactions:
            entry = packages.setdefault(package_type(transaction), {"revenue": 0.0, "count": 0})
            entry["revenue"] = round_money(entry["revenue"] + float(transaction.get("amount") or 0))
            entry["count"] += 1
        if packages:
            top_type, top = max(packages.items(), key=lambda item: item[1]["revenue"])
        else:
            top_type, top = "profile_highlight", {"revenue": 0.0, "count": 0}

        latest = _newest(transactions)
        user_ids = list({t["user_id"] for t in latest if t.get("user_id")})
        names = {
            u["id"]: u.get("name") or u.get("email") or "Usuário"
            for u in (
                SupabaseClient.fetch_many("users", columns="id, name, email", id=user_ids)
                if user_ids else []
            )
        }

        return {
            "total_revenue": _total(transactions),
            "monthly_revenue": monthly,
            "weekly_revenue": weekly,
            "daily_revenue": _total([t for t in transactions if _created_between(t, today)]),
            "total_transactions": len(transactions),
            "active_promotions": SupabaseClient.count("promotions", status=PromotionStatus.ACTIVE.value),
            "revenue_growth": {
                "monthly_percentage": monthly_growth,
                "weekly_percentage": _growth(weekly, last_week),
                "is_positive": monthly_growth >= 0,
            },
            "top_package_type": {"type": top_type, **top},
            "recent_transactions": [
                {
                    "date": t.get("created_at"),
                    "amount": float(t.get("amount") or 0),
                    "type": package_type(t),
                    "user_name": names.get(t.get("user_id"), "Usuário"),
                }
                for t in latest
            ],
        }
