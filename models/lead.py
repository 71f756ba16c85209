from dataclasses import dataclass
from typing import Any, Dict, Optional

LEAD_STATUS_COLORS = ("sky", "blue", "green", "red", "amber", "indigo", "slate")
DEFAULT_LEAD_STATUS = "New"


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class Lead:
    """A captured lead (users/{tenant}/leads/{id})."""
    id: str
    name: str
    mobile: str
    profession: str = ""
    city: str = ""
    state: str = ""
    status: str = DEFAULT_LEAD_STATUS
    date_added: Optional[str] = None

    @classmethod
    def from_record(cls, lead_id: str, data: Dict[str, Any]) -> "Lead":
        return cls(
            id=str(lead_id),
            name=_text(data.get("name")),
            mobile=_text(data.get("mobile")),
            profession=_text(data.get("profession")),
            city=_text(data.get("city")),
            state=_text(data.get("state")),
            status=_text(data.get("status")),
            date_added=data.get("dateAdded"),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "mobile": self.mobile,
            "profession": self.profession,
            "city": self.city,
            "state": self.state,
            "status": self.status,
            "dateAdded": self.date_added,
        }


@dataclass(frozen=True)
class LeadStatus:
    """Tenant-defined lead status. `color` should be one of LEAD_STATUS_COLORS (advisory)."""
    name: str
    color: str = "slate"

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "LeadStatus":
        return cls(name=_text(data.get("name")), color=_text(data.get("color")) or "slate")

    def to_record(self) -> Dict[str, Any]:
        return {"name": self.name, "color": self.color}
