from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .lead import Lead, LeadStatus
from .meeting import Meeting
from .template import MessageTemplate
from .trigger import FlowStep, Trigger, TriggerType


@dataclass(frozen=True)
class Admin:
    name: str
    email: str
    avatar_url: str = ""
    role: str = "Administrator"

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "Admin":
        return cls(
            name=str(data.get("name") or ""),
            email=str(data.get("email") or ""),
            avatar_url=str(data.get("avatarUrl") or ""),
            role=str(data.get("role") or ""),
        )

    def to_record(self) -> Dict[str, Any]:
        return {"name": self.name, "email": self.email, "avatarUrl": self.avatar_url, "role": self.role}


@dataclass(frozen=True)
class GreenApiConfig:
    """Gateway credentials. `instance_id` may carry a custom host after a colon."""
    instance_id: str
    api_key: str
    webhook_url: Optional[str] = None

    @classmethod
    def from_record(cls, data: Any) -> Optional["GreenApiConfig"]:
        if not isinstance(data, dict):
            return None
        return cls(
            instance_id=str(data.get("instanceId") or ""),
            api_key=str(data.get("apiKey") or ""),
            webhook_url=data.get("webhookUrl") or None,
        )

    def to_record(self) -> Dict[str, Any]:
        return {"instanceId": self.instance_id, "apiKey": self.api_key, "webhookUrl": self.webhook_url or ""}


@dataclass(frozen=True)
class LandingPage:
    id: str
    name: str
    redirect_url: str = ""
    created_date: str = ""
    leads_count: int = 0

    @classmethod
    def from_record(cls, page_id: str, data: Dict[str, Any]) -> "LandingPage":
        try:
            leads_count = int(data.get("leadsCount") or 0)
        except (TypeError, ValueError):
            leads_count = 0
        return cls(
            id=str(page_id),
            name=str(data.get("name") or ""),
            redirect_url=str(data.get("redirectUrl") or ""),
            created_date=str(data.get("createdDate") or ""),
            leads_count=leads_count,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "redirectUrl": self.redirect_url,
            "createdDate": self.created_date,
            "leadsCount": self.leads_count,
        }


@dataclass(frozen=True)
class TenantSnapshot:
    """Consistent, immutable copy of one tenant's dataset. Replaced wholesale on every change."""
    leads: Tuple[Lead, ...] = ()
    templates: Tuple[MessageTemplate, ...] = ()
    triggers: Tuple[Trigger, ...] = ()
    flow: Tuple[FlowStep, ...] = ()
    landing_pages: Tuple[LandingPage, ...] = ()
    meetings: Tuple[Meeting, ...] = ()
    lead_statuses: Tuple[LeadStatus, ...] = ()
    admin_user: Optional[Admin] = None
    green_api_config: Optional[GreenApiConfig] = None

    def find_lead(self, lead_id: Optional[str]) -> Optional[Lead]:
        return next((lead for lead in self.leads if lead.id == lead_id), None)

    def find_lead_by_name(self, name: str) -> Optional[Lead]:
        return next((lead for lead in self.leads if lead.name == name), None)

    def find_template(self, template_id: Optional[str]) -> Optional[MessageTemplate]:
        return next((tpl for tpl in self.templates if tpl.id == template_id), None)

    def enabled_triggers(self, trigger_type: Optional[TriggerType] = None) -> Tuple[Trigger, ...]:
        return tuple(
            trigger for trigger in self.triggers
            if trigger.enabled and (trigger_type is None or trigger.type == trigger_type)
        )

    def get_summary(self) -> Dict[str, Any]:
        return {
            "leads": len(self.leads),
            "templates": len(self.templates),
            "triggers": len(self.triggers),
            "enabled_triggers": len(self.enabled_triggers()),
            "meetings": len(self.meetings),
            "landing_pages": len(self.landing_pages),
            "gateway_connected": self.green_api_config is not None,
        }
