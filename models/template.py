from dataclasses import dataclass
from typing import Any, Dict

NAME_PLACEHOLDER = "{{name}}"


@dataclass(frozen=True)
class MessageTemplate:
    id: str
    name: str
    content: str
    last_updated: str = ""

    @classmethod
    def from_record(cls, template_id: str, data: Dict[str, Any]) -> "MessageTemplate":
        return cls(
            id=str(template_id),
            name=str(data.get("name") or ""),
            content=str(data.get("content") or ""),
            last_updated=str(data.get("lastUpdated") or ""),
        )

    def to_record(self) -> Dict[str, Any]:
        return {"name": self.name, "content": self.content, "lastUpdated": self.last_updated}

    def render(self, name: str) -> str:
        return render_template(self.content, name)


def render_template(content: str, name: str) -> str:
    """Replace every `{{name}}` occurrence with the lead's name."""
    return content.replace(NAME_PLACEHOLDER, name)
