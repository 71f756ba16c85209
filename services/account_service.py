import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Protocol

from models.timestamps import to_iso, utc_now

from .document_store import DocumentStore
from .sync_service import tenant_path

logger = logging.getLogger(__name__)

DEFAULT_AVATAR_URL = "https://picsum.photos/100"


class TenantSeedError(Exception):
    """Sign-up created the account but writing the default tenant data failed.

    The account is kept; call `AccountService.retry_seed` with `tenant_id`.
    """

    def __init__(self, tenant_id: str, message: str = ""):
        super().__init__(message or f"Seeding tenant {tenant_id} failed")
        self.tenant_id = tenant_id


class AuthProvider(Protocol):
    """External email/password identity provider"""

    async def create_user(self, email: str, password: str, display_name: str) -> str:
        ...

    async def sign_in(self, email: str, password: str) -> str:
        ...

    async def sign_out(self) -> None:
        ...


def build_seed_data(name: str, email: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Default tree for a new tenant: statuses, sample templates/triggers/flow/pages/meetings."""
    now = now or utc_now()

    def meeting(title: str, attendee: str, days: int, minutes: int) -> Dict[str, Any]:
        start = now + timedelta(days=days)
        return {
            "title": title,
            "attendee": attendee,
            "startTime": to_iso(start),
            "endTime": to_iso(start + timedelta(minutes=minutes)),
        }

    return {
        "leads": {},
        "templates": {
            "TPL001": {"name": "Welcome Message", "content": "Hi {{name}}, welcome! Thanks for signing up.",
                       "lastUpdated": "2023-10-20"},
            "TPL002": {"name": "Follow-up Reminder",
                       "content": "Hi {{name}}, just a reminder about our meeting tomorrow.",
                       "lastUpdated": "2023-10-22"},
        },
        "triggers": {
            "TRG001": {"name": "New Lead Welcome", "type": "new-lead", "enabled": True, "templateId": "TPL001"},
            "TRG002": {"name": "Meeting Reminder (24h)", "type": "meeting-reminder", "enabled": False,
                       "templateId": "TPL002", "config": {"minutesBefore": 1440}},
        },
        "flow": {
            "1": {"incomingMsg": "Hi",
                  "responseMsg": "Hello! Welcome to our service. How can I help you today?", "delayMinutes": 0},
            "2": {"incomingMsg": "interested",
                  "responseMsg": "Great! To get started, could you please tell me a bit more about what you are "
                                 "looking for?", "delayMinutes": 2},
            "3": {"incomingMsg": "price",
                  "responseMsg": "We have several plans available. I can send you a link to our pricing page.",
                  "delayMinutes": 1},
        },
        "landingPages": {
            "LP001": {"name": "Winter Offer Campaign", "redirectUrl": "/thank-you-winter",
                      "createdDate": "2023-10-15", "leadsCount": 120},
            "LP002": {"name": "Ebook Download", "redirectUrl": "/thank-you-ebook",
                      "createdDate": "2023-09-02", "leadsCount": 450},
        },
        "meetings": {
            "1": meeting("Discovery Call with Priya Sharma", "Priya Sharma", 1, 30),
            "2": meeting("Project Kickoff", "Rajesh Kumar", 2, 60),
            "3": meeting("Follow-up with Sunita Rao", "Sunita Rao", -2, 45),
            "4": meeting("Strategy Session", "Amit Singh", -5, 60),
        },
        "leadStatuses": [
            {"name": "New", "color": "sky"},
            {"name": "Meeting", "color": "indigo"},
            {"name": "Qualified", "color": "green"},
            {"name": "Junk", "color": "slate"},
        ],
        "adminUser": {"name": name, "email": email, "avatarUrl": DEFAULT_AVATAR_URL, "role": "Administrator"},
        "greenApiConfig": None,
    }


class AccountService:
    """Sign-up / sign-in on top of an external auth provider, plus tenant seeding"""

    def __init__(self, store: DocumentStore, auth: Optional[AuthProvider] = None):
        self.store = store
        self.auth = auth

    async def sign_up(self, name: str, email: str, password: str) -> str:
        """Create the account and seed its data. Raises TenantSeedError if only the first half succeeded."""
        if self.auth is None:
            raise RuntimeError("No auth provider configured")
        tenant_id = await self.auth.create_user(email, password, name)
        try:
            await self.seed_tenant(tenant_id, name, email)
        except Exception as e:
            logger.error(f"Account {tenant_id} created but seeding failed: {e}")
            raise TenantSeedError(tenant_id) from e
        return tenant_id

    async def sign_in(self, email: str, password: str) -> str:
        if self.auth is None:
            raise RuntimeError("No auth provider configured")
        return await self.auth.sign_in(email, password)

    async def sign_out(self):
        if self.auth is not None:
            await self.auth.sign_out()

    async def seed_tenant(self, tenant_id: str, name: str, email: str):
        await self.store.set(tenant_path(tenant_id), build_seed_data(name, email))
        logger.info(f"Seeded default data for tenant {tenant_id}")

    async def retry_seed(self, tenant_id: str, name: str, email: str) -> bool:
        """Seed a tenant whose node is missing. Returns False when data already exists."""
        existing = await self.store.get(tenant_path(tenant_id))
        if existing is not None:
            logger.info(f"Tenant {tenant_id} already has data, skipping seed")
            return False
        await self.seed_tenant(tenant_id, name, email)
        return True
