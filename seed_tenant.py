"""
Seed default data for TENANT_ID when its node is missing (recovery after a failed sign-up seed).
"""
import asyncio
import logging
import sys

from models.config import Config
from services.account_service import AccountService
from services.store_factory import create_store

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main() -> int:
    config = Config()
    if not config.TENANT_ID:
        logger.error("TENANT_ID is not set")
        return 1

    store = create_store(config)
    await store.connect()
    try:
        seeded = await AccountService(store).retry_seed(config.TENANT_ID, config.ADMIN_NAME, config.ADMIN_EMAIL)
    finally:
        await store.close()

    if seeded:
        logger.info(f"✅ Seeded tenant {config.TENANT_ID}")
    else:
        logger.info(f"Tenant {config.TENANT_ID} already has data, nothing to do")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
