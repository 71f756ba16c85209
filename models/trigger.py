from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


class TriggerType(str, Enum):
    NEW_LEAD = "new-lead"
    SCHEDULED = "scheduled"
    MEETING_REMINDER = "meeting-reminder"


def _parse_type(value: Any) -> Union[TriggerType, str]:
    try:
        return TriggerType(value)
    except ValueError:
        # Unknown types are carried through untouched and never scheduled
        return str(value)


def _parse_minutes(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class TriggerConfig:
    """Variant payload: dateTime/leadId for scheduled, minutesBefore for meeting-reminder.

    The shape is not validated against the trigger type.
    """
    date_time: Optional[str] = None
    lead_id: Optional[str] = None
    minutes_before: Optional[float] = None

    @classmethod
    def from_record(cls, data: Any) -> "TriggerConfig":
        if not isinstance(data, dict):
            return cls()
        lead_id = data.get("leadId")
        return cls(
            date_time=data.get("dateTime"),
            lead_id=str(lead_id) if lead_id is not None else None,
            minutes_before=_parse_minutes(data.get("minutesBefore")),
        )

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {}
        if self.date_time is not None:
            record["dateTime"] = self.date_time
        if self.lead_id is not None:
            record["leadId"] = self.lead_id
        if self.minutes_before is not None:
            minutes = self.minutes_before
            record["minutesBefore"] = int(minutes) if float(minutes).is_integer() else minutes
        return record


@dataclass(frozen=True)
class Trigger:
    id: str
    name: str
    enabled: bool
    type: Union[TriggerType, str]
    template_id: str
    config: TriggerConfig = field(default_factory=TriggerConfig)

    @classmethod
    def from_record(cls, trigger_id: str, data: Dict[str, Any]) -> "Trigger":
        return cls(
            id=str(trigger_id),
            name=str(data.get("name") or ""),
            enabled=bool(data.get("enabled", False)),
            type=_parse_type(data.get("type")),
            template_id=str(data.get("templateId") or ""),
            config=TriggerConfig.from_record(data.get("config")),
        )

    def to_record(self) -> Dict[str, Any]:
        trigger_type = self.type.value if isinstance(self.type, TriggerType) else self.type
        record: Dict[str, Any] = {
            "name": self.name,
            "enabled": self.enabled,
            "type": trigger_type,
            "templateId": self.template_id,
        }
        config = self.config.to_record()
        if config:
            record["config"] = config
        return record


@dataclass(frozen=True)
class FlowStep:
    """Incoming keyword -> reply rule. Executed by an external webhook receiver."""
    id: str
    incoming_msg: str
    response_msg: str
    delay_minutes: float = 0

    @classmethod
    def from_record(cls, step_id: str, data: Dict[str, Any]) -> "FlowStep":
        delay = _parse_minutes(data.get("delayMinutes")) or 0
        return cls(
            id=str(step_id),
            incoming_msg=str(data.get("incomingMsg") or ""),
            response_msg=str(data.get("responseMsg") or ""),
            delay_minutes=max(0, delay),
        )

    def to_record(self) -> Dict[str, Any]:
        delay = self.delay_minutes
        return {
            "incomingMsg": self.incoming_msg,
            "responseMsg": self.response_msg,
            "delayMinutes": int(delay) if float(delay).is_integer() else delay,
        }
