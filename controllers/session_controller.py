import logging
from typing import Any, Dict, Optional

from models.tenant import TenantSnapshot
from services.document_store import Subscription
from services.sync_service import SyncService

from .scheduler_controller import TriggerScheduler

logger = logging.getLogger(__name__)


class SessionController:
    """Controller for one signed-in tenant - keeps the snapshot and the scheduler in step"""

    def __init__(self, sync_service: SyncService, scheduler: TriggerScheduler):
        self.sync_service = sync_service
        self.scheduler = scheduler

        self.tenant_id: Optional[str] = None
        self._subscription: Optional[Subscription] = None
        self._snapshot: Optional[TenantSnapshot] = None
        self.snapshot_count = 0

    @property
    def snapshot(self) -> Optional[TenantSnapshot]:
        return self._snapshot

    @property
    def is_active(self) -> bool:
        return self._subscription is not None

    async def start(self, tenant_id: str):
        """Begin a session. An active session for another tenant is torn down first."""
        if self.is_active:
            if tenant_id == self.tenant_id:
                return
            logger.info(f"Switching tenant {self.tenant_id} -> {tenant_id}")
            self.stop()

        self.tenant_id = tenant_id
        self._subscription = await self.sync_service.sync_user_data(tenant_id, self._on_snapshot)
        logger.info(f"Session started for tenant {tenant_id}")

    def stop(self):
        """End the session: cancel timers before detaching the listener. Idempotent."""
        self.scheduler.stop()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
            logger.info(f"Session stopped for tenant {self.tenant_id}")
        self._snapshot = None
        self.tenant_id = None

    def _on_snapshot(self, snapshot: Optional[TenantSnapshot]):
        if not self.is_active:
            return
        self.snapshot_count += 1
        self._snapshot = snapshot
        if snapshot is None:
            # Tenant node not there yet, e.g. right after sign-up
            logger.info(f"No data yet for tenant {self.tenant_id}")
        self.scheduler.reschedule(snapshot)

    def get_status(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "is_active": self.is_active,
            "snapshots_received": self.snapshot_count,
            "snapshot": self._snapshot.get_summary() if self._snapshot else None,
            "scheduler": self.scheduler.get_status(),
        }
