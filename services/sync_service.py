import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from models.config import Config
from models.lead import Lead, LeadStatus
from models.meeting import Meeting
from models.template import MessageTemplate
from models.tenant import Admin, GreenApiConfig, LandingPage, TenantSnapshot
from models.timestamps import EPOCH, parse_timestamp
from models.trigger import FlowStep, Trigger

from .document_store import DocumentStore, Subscription

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[Optional[TenantSnapshot]], None]


def tenant_path(tenant_id: str, *children: str) -> str:
    return "/".join(("users", tenant_id) + children)


def keyed_records(collection: Any) -> List[Tuple[str, Dict[str, Any]]]:
    """Map-of-id-keyed-records -> ordered (id, record) pairs. Non-dict records are skipped."""
    if isinstance(collection, dict):
        items = collection.items()
    elif isinstance(collection, list):
        # A keyed map whose keys were all small integers may come back as a list
        items = ((str(index), value) for index, value in enumerate(collection))
    else:
        return []
    records = []
    for key, value in items:
        if isinstance(value, dict):
            records.append((str(key), value))
        elif value is not None:
            logger.debug(f"Skipping malformed record {key!r}")
    return records


class SyncService:
    """Data synchronization layer - republishes a tenant's tree as an immutable snapshot"""

    def __init__(self, store: DocumentStore, config: Optional[Config] = None):
        self.store = store
        self.config = config or Config()

    async def sync_user_data(self, tenant_id: str, callback: SnapshotListener) -> Subscription:
        """Subscribe to the whole tenant tree; `callback` gets a snapshot (or None) on every change."""
        def _on_value(raw: Any):
            try:
                snapshot = self.build_snapshot(raw)
            except Exception as e:
                # An unreadable tree must still replace the previous snapshot
                logger.error(f"Could not read data for tenant {tenant_id}: {e}", exc_info=True)
                snapshot = None
            callback(snapshot)

        subscription = await self.store.subscribe(tenant_path(tenant_id), _on_value)
        logger.info(f"Synchronizing tenant {tenant_id}")
        return subscription

    async def fetch_snapshot(self, tenant_id: str) -> Optional[TenantSnapshot]:
        """One-off fresh read, bypassing any cached snapshot."""
        return self.build_snapshot(await self.store.get(tenant_path(tenant_id)))

    def build_snapshot(self, raw: Any) -> Optional[TenantSnapshot]:
        if not isinstance(raw, dict):
            return None
        default_tz = self.config.DEFAULT_TZ

        leads = [Lead.from_record(key, value) for key, value in keyed_records(raw.get("leads"))]
        leads.sort(key=lambda lead: self._lead_sort_key(lead, default_tz), reverse=True)

        statuses = raw.get("leadStatuses")
        if isinstance(statuses, dict):
            statuses = list(statuses.values())
        elif not isinstance(statuses, list):
            statuses = []
        admin = raw.get("adminUser")

        return TenantSnapshot(
            leads=tuple(leads),
            templates=tuple(MessageTemplate.from_record(k, v) for k, v in keyed_records(raw.get("templates"))),
            triggers=tuple(Trigger.from_record(k, v) for k, v in keyed_records(raw.get("triggers"))),
            flow=tuple(FlowStep.from_record(k, v) for k, v in keyed_records(raw.get("flow"))),
            landing_pages=tuple(LandingPage.from_record(k, v) for k, v in keyed_records(raw.get("landingPages"))),
            meetings=tuple(
                Meeting.from_record(k, v, default_tz) for k, v in keyed_records(raw.get("meetings"))
            ),
            lead_statuses=tuple(LeadStatus.from_record(s) for s in statuses if isinstance(s, dict)),
            admin_user=Admin.from_record(admin) if isinstance(admin, dict) else None,
            green_api_config=GreenApiConfig.from_record(raw.get("greenApiConfig")),
        )

    @staticmethod
    def _lead_sort_key(lead: Lead, default_tz: str):
        # Missing or unparseable dates sort as the epoch, i.e. oldest
        return parse_timestamp(lead.date_added, default_tz) or EPOCH
