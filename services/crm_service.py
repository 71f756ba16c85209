import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from models.config import Config
from models.lead import DEFAULT_LEAD_STATUS, Lead, LeadStatus
from models.meeting import Meeting
from models.template import MessageTemplate
from models.tenant import Admin, GreenApiConfig
from models.timestamps import parse_timestamp, to_iso, utc_now
from models.trigger import FlowStep, Trigger, TriggerType

from .document_store import DocumentStore
from .green_api_service import GreenApiService, SendResult
from .sync_service import SyncService, tenant_path

logger = logging.getLogger(__name__)

TEST_MESSAGE = "Green CRM - your API connection is working!👍"
NOT_CONNECTED_MESSAGE = "Green API is not connected."

LEAD_FIELDS = ("name", "mobile", "profession", "city", "state")


class CrmService:
    """Mutation commands for a tenant's data, plus the new-lead welcome dispatch"""

    def __init__(self, store: DocumentStore, gateway: GreenApiService,
                 sync_service: Optional[SyncService] = None, config: Optional[Config] = None):
        self.config = config or Config()
        self.store = store
        self.gateway = gateway
        self.sync_service = sync_service or SyncService(store, self.config)

    # ----- LEADS -----
    async def add_new_lead(self, tenant_id: str, lead_data: Mapping[str, Any]) -> Lead:
        """Write a new lead, then send the welcome message if a new-lead trigger is enabled.

        The lead write is durable before any dispatch; dispatch failures are logged, not raised.
        """
        lead_id = self.store.push_id()
        lead = Lead(
            id=lead_id,
            name=str(lead_data.get("name") or ""),
            mobile=str(lead_data.get("mobile") or ""),
            profession=str(lead_data.get("profession") or ""),
            city=str(lead_data.get("city") or ""),
            state=str(lead_data.get("state") or ""),
            status=DEFAULT_LEAD_STATUS,
            date_added=to_iso(utc_now()),
        )
        await self.store.set(tenant_path(tenant_id, "leads", lead_id), lead.to_record())
        logger.info(f"Added lead {lead_id} ({lead.name})")

        try:
            await self._dispatch_new_lead(tenant_id, lead)
        except Exception as e:
            logger.error(f"Error sending welcome message after adding lead {lead_id}: {e}", exc_info=True)
        return lead

    async def _dispatch_new_lead(self, tenant_id: str, lead: Lead) -> Optional[SendResult]:
        # Fresh read instead of the session snapshot, which may lag behind the write
        snapshot = await self.sync_service.fetch_snapshot(tenant_id)
        if snapshot is None or snapshot.green_api_config is None or not snapshot.triggers:
            logger.info("Cannot send welcome message: missing config or triggers.")
            return None

        trigger = next(iter(snapshot.enabled_triggers(TriggerType.NEW_LEAD)), None)
        if trigger is None:
            return None
        template = snapshot.find_template(trigger.template_id)
        if template is None:
            logger.warning(f"New-lead trigger {trigger.id} references missing template {trigger.template_id}")
            return None

        logger.info(f"Sending welcome message to {lead.name}...")
        result = await self.gateway.send_message(snapshot.green_api_config, lead.mobile, template.render(lead.name))
        if not result.success:
            logger.warning(f"Welcome message to {lead.name} failed: {result.message}")
        return result

    async def capture_landing_page_lead(self, tenant_id: str, page_id: str, form: Mapping[str, Any]) -> Lead:
        """Lead submitted through a landing page form (mobile arrives as `mobileNumber`)."""
        lead_data = {field: form.get(field, "") for field in LEAD_FIELDS}
        lead_data["mobile"] = form.get("mobileNumber") or form.get("mobile") or ""
        logger.info(f"Landing page {page_id} captured a lead")
        return await self.add_new_lead(tenant_id, lead_data)

    async def update_lead(self, tenant_id: str, lead_id: str, updates: Mapping[str, Any]):
        data = {key: value for key, value in updates.items() if key != "id"}
        if "date_added" in data:
            data["dateAdded"] = data.pop("date_added")
        await self.store.update(tenant_path(tenant_id, "leads", lead_id), data)

    async def delete_leads(self, tenant_id: str, lead_ids: Iterable[str]):
        """Delete several leads in one atomic multi-path update."""
        updates = {tenant_path(tenant_id, "leads", lead_id): None for lead_id in lead_ids}
        if updates:
            await self.store.update_paths(updates)
            logger.info(f"Deleted {len(updates)} lead(s)")

    async def update_lead_statuses(self, tenant_id: str, statuses: Iterable[LeadStatus]):
        await self.store.set(tenant_path(tenant_id, "leadStatuses"), [s.to_record() for s in statuses])

    # ----- TEMPLATES / TRIGGERS / FLOW -----
    async def save_template(self, tenant_id: str, template: MessageTemplate) -> str:
        template_id = template.id or self.store.push_id()
        record = template.to_record()
        if not record["lastUpdated"]:
            record["lastUpdated"] = utc_now().date().isoformat()
        await self.store.set(tenant_path(tenant_id, "templates", template_id), record)
        return template_id

    async def delete_template(self, tenant_id: str, template_id: str):
        # Triggers referencing it are left dangling and simply stop firing
        await self.store.remove(tenant_path(tenant_id, "templates", template_id))

    async def update_triggers(self, tenant_id: str, triggers: Iterable[Trigger]):
        await self.store.set(tenant_path(tenant_id, "triggers"), self.records_by_id(triggers))

    async def update_flow(self, tenant_id: str, flow: Iterable[FlowStep]):
        await self.store.set(tenant_path(tenant_id, "flow"), self.records_by_id(flow))

    # ----- MEETINGS / ADMIN -----
    async def add_meeting(self, tenant_id: str, title: str, attendee: str,
                          start_time: datetime, end_time: datetime) -> str:
        meeting_id = self.store.push_id()
        # Naive times are local to DEFAULT_TZ, the same zone used when reading them back
        meeting = Meeting(
            id=meeting_id,
            title=title,
            attendee=attendee,
            start_time=parse_timestamp(start_time, self.config.DEFAULT_TZ),
            end_time=parse_timestamp(end_time, self.config.DEFAULT_TZ),
        )
        await self.store.set(tenant_path(tenant_id, "meetings", meeting_id), meeting.to_record())
        return meeting_id

    async def update_admin_user(self, tenant_id: str, admin: Admin):
        await self.store.set(tenant_path(tenant_id, "adminUser"), admin.to_record())

    # ----- GREEN API -----
    async def save_green_api_config(self, tenant_id: str, instance_id: str, api_key: str, webhook_url: str = ""):
        config = GreenApiConfig(instance_id=instance_id, api_key=api_key, webhook_url=webhook_url or None)
        await self.store.set(tenant_path(tenant_id, "greenApiConfig"), config.to_record())
        logger.info(f"Green API connected for tenant {tenant_id}")

    async def delete_green_api_config(self, tenant_id: str):
        await self.store.remove(tenant_path(tenant_id, "greenApiConfig"))
        logger.info(f"Green API disconnected for tenant {tenant_id}")

    async def send_configured_message(self, tenant_id: str, mobile: str, message: str) -> SendResult:
        try:
            config = GreenApiConfig.from_record(await self.store.get(tenant_path(tenant_id, "greenApiConfig")))
            if config is None:
                return SendResult(False, NOT_CONNECTED_MESSAGE)
            return await self.gateway.send_message(config, mobile, message)
        except Exception as e:
            logger.error(f"Error sending configured message: {e}")
            return SendResult(False, str(e) or "An unknown error occurred.")

    async def send_test_message(self, tenant_id: str, mobile: str) -> SendResult:
        """The "Test Connection" flow: the only place gateway failures reach the user."""
        return await self.send_configured_message(tenant_id, mobile, TEST_MESSAGE)

    @staticmethod
    def records_by_id(records: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
        return {record.id: record.to_record() for record in records}
