import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class SchedulerView:
    """View layer for the scheduler - renders session status through the log"""

    def display_startup_message(self, tenant_id: str, backend: str):
        logger.info("🚀 Green CRM scheduler starting")
        logger.info(f"   • Tenant: {tenant_id}")
        logger.info(f"   • Store backend: {backend}")

    def display_session_status(self, status: Dict[str, Any]):
        """Periodic status line"""
        scheduler = status.get("scheduler", {})
        logger.info("Session Status:")
        logger.info(f"   • Tenant: {status.get('tenant_id')} (active: {status.get('is_active')})")
        logger.info(f"   • Snapshots received: {status.get('snapshots_received', 0)}")
        self.display_snapshot_summary(status.get("snapshot"))
        logger.info(f"   • Pending messages: {scheduler.get('pending', 0)}")
        logger.info(f"   • Messages fired: {scheduler.get('fired', 0)}")
        if scheduler.get("next_fire_at"):
            logger.info(f"   • Next fire at: {scheduler['next_fire_at']}")

    def display_snapshot_summary(self, summary: Optional[Dict[str, Any]]):
        if not summary:
            logger.info("   • No tenant data yet")
            return
        logger.info(
            f"   • Leads: {summary.get('leads', 0)}, templates: {summary.get('templates', 0)}, "
            f"triggers: {summary.get('enabled_triggers', 0)}/{summary.get('triggers', 0)} enabled, "
            f"meetings: {summary.get('meetings', 0)}"
        )
        if not summary.get("gateway_connected"):
            logger.info("   • Green API not connected, time-based triggers are idle")

    def display_error(self, error: str, context: str = ""):
        logger.error(f"Error: {error}")
        if context:
            logger.error(f"   • Context: {context}")

    def display_shutdown(self):
        logger.info("Green CRM scheduler shutdown")
