import asyncio
import logging
import signal
import sys

from models.config import Config
from controllers.scheduler_controller import TriggerScheduler
from controllers.session_controller import SessionController
from services.account_service import AccountService
from services.document_store import MemoryDocumentStore
from services.green_api_service import GreenApiService
from services.store_factory import create_store
from services.sync_service import SyncService
from views.scheduler_view import SchedulerView

logging.basicConfig(
    level=Config.LOG_LEVEL.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class CRMServer:
    """Main server - runs one tenant session and its trigger scheduler"""

    def __init__(self):
        self.config = Config()
        self.store = create_store(self.config)
        self.gateway = GreenApiService(self.config)
        self.scheduler = TriggerScheduler(self.gateway, config=self.config)
        self.session = SessionController(SyncService(self.store, self.config), self.scheduler)
        self.view = SchedulerView()

        self.running = False
        self._shutdown: asyncio.Event | None = None

    async def start(self):
        if not self.config.TENANT_ID:
            raise RuntimeError("TENANT_ID is not set")

        self.view.display_startup_message(self.config.TENANT_ID, self.config.STORE_BACKEND)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._signal_handler, sig)
            except NotImplementedError:
                signal.signal(sig, lambda signum, frame: self._signal_handler(signum))

        self.running = True
        self._shutdown = asyncio.Event()
        await self.store.connect()

        if isinstance(self.store, MemoryDocumentStore):
            # Nothing persisted between runs; start from the default tenant data
            await AccountService(self.store).retry_seed(
                self.config.TENANT_ID, self.config.ADMIN_NAME, self.config.ADMIN_EMAIL
            )

        await self.session.start(self.config.TENANT_ID)

        try:
            while self.running:
                try:
                    await asyncio.wait_for(self._shutdown.wait(), timeout=self.config.STATUS_INTERVAL)
                except asyncio.TimeoutError:
                    self.view.display_session_status(self.session.get_status())
                except Exception as e:
                    self.view.display_error(str(e), "Main loop")
                    await asyncio.sleep(5)
        finally:
            await self.stop()

    def _signal_handler(self, signum):
        logger.info(f"Received signal {signum}, shutting down...")
        self.running = False
        if self._shutdown is not None:
            self._shutdown.set()

    async def stop(self):
        self.view.display_shutdown()
        self.running = False
        self.session.stop()
        await self.scheduler.wait_idle()
        await self.store.close()
        logger.info("CRM server stopped")


def main():
    server = CRMServer()

    try:
        asyncio.run(server.start())
    except KeyboardInterrupt:
        logger.info("Shutdown initiated by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
