# =============================================================================
# core/services/notification_service.py - Promotion Notifications
# =============================================================================
# Periodic job (see workers/tasks.py) that tells braiders about their
# promotions:
#
#   expiring          ends within `expiration_days_before` days
#   expired           just auto-expired
#   low_performance   CTR or ROI under the configured thresholds
#   renewal_reminder  ended 1-3 days ago
#   weekly_report     Mondays, one summary per user per week
#
# Every notification is a row in `notifications` (so it shows up in the
# in-app inbox) and is pushed to the user's realtime room.
# =============================================================================

import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from app.config import settings
from app.websocket.broadcast import publish_notification
from core.models.promotion import PromotionStatus
from core.services.promotion_service import PromotionService
from lib.supabase_client import SupabaseClient
from lib.utils import parse_datetime, to_iso, utc_now

logger = logging.getLogger(__name__)

NOTIFICATION_SOURCE = "promotion_system"

DEFAULT_CONFIG: dict[str, Any] = {
    "email_enabled": True,
    "in_app_enabled": True,
    "push_enabled": False,
    "expiration_days_before": settings.PROMOTION_EXPIRY_WARNING_DAYS,
    "performance_threshold_ctr": 2.0,
    "performance_threshold_roi": 10.0,
}

# Inbox category per promotion notification type
NOTIFICATION_TYPES = {
    "expiring": "warning",
    "expired": "info",
    "low_performance": "warning",
    "renewal_reminder": "info",
    "performance_report": "info",
}

IMPORTANT_TYPES = ("expired", "low_performance")

LOW_PERFORMANCE_MIN_VIEWS = 100

# How far back an unannounced expiry is still worth a notification
EXPIRED_NOTICE_DAYS = 3


def performance_metrics(promotion: dict[str, Any]) -> tuple[float, float]:
    """
    Click-through rate and ROI of a promotion, both in percent.

    ROI is 0 when nothing was invested.
    """
    views = promotion.get("views_count") or 0
    clicks = promotion.get("clicks_count") or 0
    investment = float(promotion.get("investment_amount") or 0)
    revenue = float(promotion.get("revenue_generated") or 0)

    ctr = clicks / views * 100 if views > 0 else 0.0
    roi = (revenue - investment) / investment * 100 if investment > 0 else 0.0
    return ctr, roi


def optimization_suggestions(ctr: float, roi: float, config: dict[str, Any]) -> list[str]:
    suggestions = []
    if ctr < config["performance_threshold_ctr"]:
        suggestions.append("Considere alterar o título ou descrição para ser mais atrativo")
        suggestions.append("Adicione imagens mais chamativas ao conteúdo")
    if roi < config["performance_threshold_roi"]:
        suggestions.append("Revise o valor do investimento vs. preço dos serviços")
        suggestions.append("Foque em horários de maior movimento")
    return suggestions or ["Sua promoção está dentro dos parâmetros esperados"]


class NotificationService:
    """
    Service generating promotion notifications.
    """

    @staticmethod
    def get_config() -> dict[str, Any]:
        """Notification settings merged over the defaults."""
        row = SupabaseClient.fetch_one("notification_settings", type="promotion_notifications")
        return {**DEFAULT_CONFIG, **((row or {}).get("config") or {})}

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    @staticmethod
    def _already_sent(
        user_id: str,
        original_type: str,
        since: datetime,
        promotion_id: str | None = None,
    ) -> bool:
        for row in SupabaseClient.fetch_many("notifications", columns="id, metadata, created_at", user_id=user_id):
            metadata = row.get("metadata") or {}
            created = parse_datetime(row.get("created_at"))
            if (
                metadata.get("notification_source") == NOTIFICATION_SOURCE
                and metadata.get("original_type") == original_type
                and (promotion_id is None or str(metadata.get("promotion_id")) == str(promotion_id))
                and created is not None
                and created >= since
            ):
                return True
        return False

    @staticmethod
    def _notify(
        user_id: str,
        promotion_id: str | None,
        original_type: str,
        title: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        notification = SupabaseClient.insert_one("notifications", {
            "user_id": user_id,
            "type": NOTIFICATION_TYPES.get(original_type, "info"),
            "title": title,
            "message": message,
            "is_important": original_type in IMPORTANT_TYPES,
            "is_read": False,
            "action_url": (
                f"/braider/promotions?highlight={promotion_id}" if promotion_id else "/braider/promotions"
            ),
            "action_label": "Ver Promoções",
            "metadata": {
                **(metadata or {}),
                "promotion_id": promotion_id,
                "notification_source": NOTIFICATION_SOURCE,
                "original_type": original_type,
            },
        })
        publish_notification(user_id, notification)
        return notification

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    @staticmethod
    def process_expiring(config: dict[str, Any], now: datetime) -> int:
        promotions = SupabaseClient.rpc(
            "get_expiring_promotions",
            {"days_before": config["expiration_days_before"]},
        ) or []

        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        sent = 0
        for promo in promotions:
            user_id = str(promo["user_id"])
            if NotificationService._already_sent(user_id, "expiring", today, promo["id"]):
                continue
            days_left = promo.get("days_left")
            NotificationService._notify(
                user_id, promo["id"], "expiring",
                "Promoção Expirando",
                f"Sua promoção \"{promo.get('title')}\" expira em {days_left} dias.",
                {"days_left": days_left, "promotion_type": promo.get("type")},
            )
            sent += 1
        return sent

    @staticmethod
    def process_expired(config: dict[str, Any], now: datetime) -> int:
        """
        Notify owners of promotions that ended recently.

        Promotions expired by the hourly expiry job are picked up too; a
        promotion is only announced once.
        """
        PromotionService.expire_promotions(now)

        since = now - timedelta(days=EXPIRED_NOTICE_DAYS)
        promotions = SupabaseClient.fetch_many(
            "promotions",
            columns="id, user_id, title, type, end_date, views_count, clicks_count, conversions_count",
            status=PromotionStatus.EXPIRED.value,
        )

        sent = 0
        for promo in promotions:
            ended = parse_datetime(promo.get("end_date"))
            if ended is None or not (since <= ended <= now):
                continue
            user_id = str(promo["user_id"])
            if NotificationService._already_sent(user_id, "expired", ended, promo["id"]):
                continue
            NotificationService._notify(
                user_id, promo["id"], "expired",
                "Promoção Expirada",
                f"Sua promoção \"{promo.get('title')}\" expirou. Veja os resultados e considere renovar.",
                {"final_stats": {
                    "views": promo.get("views_count") or 0,
                    "clicks": promo.get("clicks_count") or 0,
                    "conversions": promo.get("conversions_count") or 0,
                }},
            )
            sent += 1
        return sent

    @staticmethod
    def process_low_performance(config: dict[str, Any], now: datetime) -> int:
        week_ago = now - timedelta(days=7)
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)

        candidates = [
            p for p in SupabaseClient.fetch_many("promotions", status=PromotionStatus.ACTIVE.value)
            if (p.get("views_count") or 0) > LOW_PERFORMANCE_MIN_VIEWS
            and (parse_datetime(p.get("created_at")) or now) >= week_ago
        ]

        sent = 0
        for promo in candidates:
            ctr, roi = performance_metrics(promo)
            if ctr >= config["performance_threshold_ctr"] and roi >= config["performance_threshold_roi"]:
                continue
            user_id = str(promo["user_id"])
            if NotificationService._already_sent(user_id, "low_performance", today, promo["id"]):
                continue
            NotificationService._notify(
                user_id, promo["id"], "low_performance",
                "Performance Baixa Detectada",
                f"Sua promoção \"{promo.get('title')}\" pode ser otimizada. Veja nossas sugestões.",
                {
                    "current_ctr": round(ctr, 2),
                    "current_roi": round(roi, 2),
                    "suggestions": optimization_suggestions(ctr, roi, config),
                },
            )
            sent += 1
        return sent

    @staticmethod
    def process_renewal_reminders(config: dict[str, Any], now: datetime) -> int:
        window_start = now - timedelta(days=3)
        window_end = now - timedelta(days=1)
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)

        sent = 0
        for promo in SupabaseClient.fetch_many("promotions", status=PromotionStatus.EXPIRED.value):
            ended = parse_datetime(promo.get("end_date"))
            if ended is None or not (window_start <= ended <= window_end):
                continue
            user_id = str(promo["user_id"])
            if NotificationService._already_sent(user_id, "renewal_reminder", today, promo["id"]):
                continue
            NotificationService._notify(
                user_id, promo["id"], "renewal_reminder",
                "Renove sua Promoção",
                f"Que tal renovar sua promoção \"{promo.get('title')}\"? Os resultados foram promissores!",
                {"original_promotion": promo["id"], "renewal_discount": 10},
            )
            sent += 1
        return sent

    @staticmethod
    def process_weekly_reports(config: dict[str, Any], now: datetime) -> int:
        if now.weekday() != 0:
            return 0

        week_ago = now - timedelta(days=7)
        week_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

        recent = [
            p for p in SupabaseClient.fetch_many(
                "promotions",
                status=[PromotionStatus.ACTIVE.value, PromotionStatus.EXPIRED.value],
            )
            if (parse_datetime(p.get("created_at")) or week_ago) >= week_ago
        ]

        by_user: dict[str, list[dict[str, Any]]] = {}
        for promo in recent:
            by_user.setdefault(str(promo["user_id"]), []).append(promo)

        sent = 0
        for user_id, promotions in by_user.items():
            if NotificationService._already_sent(user_id, "performance_report", week_start):
                continue
            summary = {
                "total_views": sum(p.get("views_count") or 0 for p in promotions),
                "total_clicks": sum(p.get("clicks_count") or 0 for p in promotions),
                "total_conversions": sum(p.get("conversions_count") or 0 for p in promotions),
                "active_promotions": sum(1 for p in promotions if p.get("status") == PromotionStatus.ACTIVE.value),
                "expired_promotions": sum(1 for p in promotions if p.get("status") == PromotionStatus.EXPIRED.value),
            }
            NotificationService._notify(
                user_id, None, "performance_report",
                "Relatório Semanal Disponível",
                "Seu relatório de performance da semana está pronto!",
                {"summary": summary},
            )
            sent += 1
        return sent

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    @staticmethod
    def process_all(now: datetime | None = None) -> dict[str, int]:
        """
        Run every notification step.

        A failing step is logged and counted as zero so the others still run.

        Returns:
            Notifications sent per step
        """
        now = now or utc_now()
        config = NotificationService.get_config()

        steps: dict[str, Callable[[dict[str, Any], datetime], int]] = {
            "expiring": NotificationService.process_expiring,
            "expired": NotificationService.process_expired,
            "low_performance": NotificationService.process_low_performance,
            "renewal_reminder": NotificationService.process_renewal_reminders,
            "weekly_report": NotificationService.process_weekly_reports,
        }

        results: dict[str, int] = {}
        for name, step in steps.items():
            try:
                results[name] = step(config, now)
            except Exception:
                logger.exception(f"Notification step {name} failed")
                results[name] = 0

        logger.info(f"Promotion notifications processed at {to_iso(now)}: {results}")
        return results
