import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import httpx

from models.config import Config
from models.tenant import GreenApiConfig

logger = logging.getLogger(__name__)

AUTH_FAILED_MESSAGE = (
    "Authentication failed (401). Please check your credentials and ensure your "
    "instance is authorized in your Green API account."
)
NOT_CONFIGURED_MESSAGE = "Green API is not configured."
NOT_SENT_MESSAGE = "API indicates message was not sent. Check Green API console."


@dataclass(frozen=True)
class SendResult:
    success: bool
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "message": self.message}


class GreenApiService:
    """Messaging gateway client. `send_message` never raises."""

    def __init__(self, config: Optional[Config] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or Config()
        self._transport = transport

    def build_chat_id(self, mobile: str) -> str:
        return f"{self.config.GREEN_API_COUNTRY_CODE}{mobile}{self.config.GREEN_API_CHAT_SUFFIX}"

    def resolve_instance(self, instance_id: str) -> Tuple[str, str]:
        """Split "1101:custom.host" into (instance id, host); default host when no colon."""
        instance, sep, host = instance_id.partition(":")
        if sep and host:
            return instance, host
        return instance, self.config.GREEN_API_HOST

    def build_url(self, gateway: GreenApiConfig) -> str:
        instance, host = self.resolve_instance(gateway.instance_id)
        return f"https://{host}/waInstance{instance}/sendMessage/{gateway.api_key}"

    async def send_message(self, gateway: Optional[GreenApiConfig], mobile: str, message: str) -> SendResult:
        if gateway is None or not gateway.instance_id or not gateway.api_key:
            return SendResult(False, NOT_CONFIGURED_MESSAGE)

        payload = {"chatId": self.build_chat_id(mobile), "message": message}
        try:
            async with httpx.AsyncClient(timeout=self.config.GREEN_API_TIMEOUT, transport=self._transport) as client:
                response = await client.post(self.build_url(gateway), json=payload)

            if not response.is_success:
                return self._failure_from_response(response)

            result = response.json()
            message_id = result.get("idMessage") if isinstance(result, dict) else None
            if message_id:
                logger.info(f"Message {message_id} sent to {payload['chatId']}")
                return SendResult(True, f"Message sent successfully with ID: {message_id}")
            logger.warning(f"Green API accepted request for {payload['chatId']} without a message id")
            return SendResult(False, NOT_SENT_MESSAGE)

        except Exception as e:
            logger.error(f"Failed to send WhatsApp message: {e}")
            return SendResult(False, str(e) or "An unknown error occurred.")

    @staticmethod
    def _failure_from_response(response: httpx.Response) -> SendResult:
        if response.status_code == 401:
            logger.error("Green API rejected credentials (401)")
            return SendResult(False, AUTH_FAILED_MESSAGE)
        try:
            data = response.json()
        except ValueError:
            data = {}
        api_error = None
        if isinstance(data, dict):
            api_error = data.get("error") or data.get("message")
        message = str(api_error) if api_error else f"API request failed with status {response.status_code}"
        logger.error(f"Green API request failed: {message}")
        return SendResult(False, message)
