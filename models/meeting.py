from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .timestamps import parse_timestamp, to_iso


@dataclass(frozen=True)
class Meeting:
    """Calendar entry. `attendee` is free text matched against Lead.name by exact equality."""
    id: str
    title: str
    attendee: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @classmethod
    def from_record(cls, meeting_id: str, data: Dict[str, Any], default_tz: str = "UTC") -> "Meeting":
        return cls(
            id=str(meeting_id),
            title=str(data.get("title") or ""),
            attendee=str(data.get("attendee") or ""),
            start_time=parse_timestamp(data.get("startTime"), default_tz),
            end_time=parse_timestamp(data.get("endTime"), default_tz),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "attendee": self.attendee,
            "startTime": to_iso(self.start_time) if self.start_time else None,
            "endTime": to_iso(self.end_time) if self.end_time else None,
        }
