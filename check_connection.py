"""
Test Connection - send a test WhatsApp message with the tenant's stored Green API credentials.

Usage: python check_connection.py <mobile>
"""
import argparse
import asyncio
import json
import logging
import sys

from models.config import Config
from services.crm_service import CrmService
from services.green_api_service import GreenApiService
from services.store_factory import create_store
from views.api_view import APIView

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def run(mobile: str) -> int:
    config = Config()
    if not config.TENANT_ID:
        logger.error("TENANT_ID is not set")
        return 1

    store = create_store(config)
    await store.connect()
    try:
        crm = CrmService(store, GreenApiService(config), config=config)
        result = await crm.send_test_message(config.TENANT_ID, mobile)
    finally:
        await store.close()

    print(json.dumps(APIView.format_send_result(result), ensure_ascii=False, indent=2))
    return 0 if result.success else 2


def main():
    parser = argparse.ArgumentParser(description="Send a Green API test message")
    parser.add_argument("mobile", help="WhatsApp number without country code")
    args = parser.parse_args()
    sys.exit(asyncio.run(run(args.mobile)))


if __name__ == "__main__":
    main()
