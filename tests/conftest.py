from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest

from models.config import Config
from models.tenant import GreenApiConfig
from models.timestamps import to_iso
from services.green_api_service import SendResult

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class RecordingGateway:
    """Stands in for GreenApiService and records every send."""

    def __init__(self, result: Optional[SendResult] = None, error: Optional[Exception] = None):
        self.calls: List[Tuple[Optional[GreenApiConfig], str, str]] = []
        self.result = result or SendResult(True, "Message sent successfully with ID: test")
        self.error = error

    async def send_message(self, gateway, mobile: str, message: str) -> SendResult:
        self.calls.append((gateway, mobile, message))
        if self.error is not None:
            raise self.error
        return self.result

    @property
    def messages(self) -> List[str]:
        return [message for _, _, message in self.calls]


@pytest.fixture
def config() -> Config:
    return Config(
        STORE_BACKEND="memory",
        TENANT_ID="tenant-1",
        GREEN_API_HOST="api.green-api.com",
        GREEN_API_COUNTRY_CODE="91",
        GREEN_API_CHAT_SUFFIX="@c.us",
        GREEN_API_TIMEOUT=None,
        DEFAULT_TZ="UTC",
    )


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


def build_tenant_tree(now: datetime = NOW, **overrides: Any) -> Dict[str, Any]:
    """Raw tenant tree as stored under users/{tenantId}."""
    tree: Dict[str, Any] = {
        "leads": {
            "L1": {"name": "Raj", "mobile": "9876500001", "status": "New",
                   "dateAdded": to_iso(now - timedelta(days=2))},
            "L2": {"name": "Priya Sharma", "mobile": "9876500002", "status": "Meeting",
                   "dateAdded": to_iso(now - timedelta(days=1))},
        },
        "templates": {
            "T1": {"name": "Reminder", "content": "Reminder {{name}}", "lastUpdated": "2024-04-01"},
            "T2": {"name": "Welcome", "content": "Hi {{name}}, welcome!", "lastUpdated": "2024-04-01"},
        },
        "triggers": {
            "TR1": {"name": "Follow up Raj", "type": "scheduled", "enabled": True, "templateId": "T1",
                    "config": {"dateTime": to_iso(now + timedelta(hours=1)), "leadId": "L1"}},
        },
        "meetings": {
            "M1": {"title": "Discovery Call", "attendee": "Priya Sharma",
                   "startTime": to_iso(now + timedelta(days=1)),
                   "endTime": to_iso(now + timedelta(days=1, minutes=30))},
        },
        "leadStatuses": [{"name": "New", "color": "sky"}, {"name": "Meeting", "color": "indigo"}],
        "adminUser": {"name": "Owner", "email": "owner@example.com", "avatarUrl": "", "role": "Administrator"},
        "greenApiConfig": {"instanceId": "1101000001", "apiKey": "secret", "webhookUrl": ""},
    }
    tree.update(overrides)
    return tree
