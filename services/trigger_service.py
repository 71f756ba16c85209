import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, NamedTuple, Optional

from models.config import Config
from models.tenant import TenantSnapshot
from models.timestamps import parse_timestamp, utc_now
from models.trigger import Trigger, TriggerType

logger = logging.getLogger(__name__)


class FireKey(NamedTuple):
    """Identity of one pending send: the trigger plus its target (lead:{id} or meeting:{id})."""
    trigger_id: str
    target: str


@dataclass(frozen=True)
class PlannedFire:
    key: FireKey
    fire_at: datetime
    mobile: str
    message: str
    trigger_name: str
    lead_name: str


class TriggerService:
    """Service layer for trigger business logic - decides which sends are due and when"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()

    def is_actionable(self, snapshot: Optional[TenantSnapshot]) -> bool:
        """Scheduler stays idle without enabled triggers, gateway config, leads or templates."""
        return bool(
            snapshot is not None
            and snapshot.enabled_triggers()
            and snapshot.green_api_config is not None
            and snapshot.leads
            and snapshot.templates
        )

    def plan(self, snapshot: Optional[TenantSnapshot], now: Optional[datetime] = None) -> List[PlannedFire]:
        """Expand enabled time-based triggers into future sends. Past or unresolvable ones are skipped."""
        if not self.is_actionable(snapshot):
            return []
        now = now or utc_now()

        fires: List[PlannedFire] = []
        for trigger in snapshot.enabled_triggers():
            try:
                if trigger.type == TriggerType.SCHEDULED:
                    fire = self._plan_scheduled(snapshot, trigger, now)
                    if fire:
                        fires.append(fire)
                elif trigger.type == TriggerType.MEETING_REMINDER:
                    fires.extend(self._plan_meeting_reminders(snapshot, trigger, now))
            except Exception as e:
                # One bad trigger never blocks the rest
                logger.warning(f"Skipping trigger {trigger.name!r} ({trigger.id}): {e}")
        return fires

    def _plan_scheduled(self, snapshot: TenantSnapshot, trigger: Trigger, now: datetime) -> Optional[PlannedFire]:
        config = trigger.config
        if not config.date_time or not config.lead_id:
            return None
        lead = snapshot.find_lead(config.lead_id)
        template = snapshot.find_template(trigger.template_id)
        fire_at = parse_timestamp(config.date_time, self.config.DEFAULT_TZ)
        if lead is None or template is None or fire_at is None:
            logger.debug(f"[SKIP] scheduled trigger {trigger.id}: unresolved lead, template or date")
            return None
        if fire_at <= now:
            logger.debug(f"[SKIP] scheduled trigger {trigger.id}: {fire_at.isoformat()} already passed")
            return None
        return PlannedFire(
            key=FireKey(trigger.id, f"lead:{lead.id}"),
            fire_at=fire_at,
            mobile=lead.mobile,
            message=template.render(lead.name),
            trigger_name=trigger.name,
            lead_name=lead.name,
        )

    def _plan_meeting_reminders(self, snapshot: TenantSnapshot, trigger: Trigger, now: datetime) -> List[PlannedFire]:
        minutes_before = trigger.config.minutes_before
        if minutes_before is None:
            return []
        template = snapshot.find_template(trigger.template_id)
        if template is None:
            return []

        fires = []
        for meeting in snapshot.meetings:
            if meeting.start_time is None:
                continue
            # Exact name equality: the calendar only stores the attendee's name
            lead = snapshot.find_lead_by_name(meeting.attendee)
            if lead is None:
                continue
            try:
                fire_at = meeting.start_time - timedelta(minutes=minutes_before)
            except (OverflowError, ValueError):
                logger.debug(f"[SKIP] meeting {meeting.id}: start time out of range")
                continue
            if fire_at <= now:
                continue
            fires.append(PlannedFire(
                key=FireKey(trigger.id, f"meeting:{meeting.id}"),
                fire_at=fire_at,
                mobile=lead.mobile,
                message=template.render(lead.name),
                trigger_name=trigger.name,
                lead_name=lead.name,
            ))
        return fires
