import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Protocol, Set

from models.config import Config
from models.tenant import GreenApiConfig, TenantSnapshot
from models.timestamps import utc_now
from services.green_api_service import SendResult
from services.trigger_service import FireKey, PlannedFire, TriggerService

logger = logging.getLogger(__name__)


class MessageGateway(Protocol):
    async def send_message(self, gateway: Optional[GreenApiConfig], mobile: str, message: str) -> SendResult:
        ...


class TriggerScheduler:
    """Owns the pending trigger timers of one session.

    Every snapshot change cancels all timers and re-arms them from scratch.
    `reschedule` does not await, so the swap is atomic on the event loop.
    Timers only live as long as the process; nothing is persisted.
    """

    def __init__(self, gateway: MessageGateway, trigger_service: Optional[TriggerService] = None,
                 config: Optional[Config] = None, clock: Callable[[], datetime] = utc_now):
        self.config = config or Config()
        self.gateway = gateway
        self.trigger_service = trigger_service or TriggerService(self.config)
        self._clock = clock

        self._handles: Dict[FireKey, asyncio.TimerHandle] = {}
        self._planned: Dict[FireKey, PlannedFire] = {}
        self._gateway_config: Optional[GreenApiConfig] = None
        self._send_tasks: Set[asyncio.Task] = set()

        self.reschedule_count = 0
        self.fired_count = 0

    def start(self, snapshot: Optional[TenantSnapshot]) -> int:
        return self.reschedule(snapshot)

    def reschedule(self, snapshot: Optional[TenantSnapshot]) -> int:
        """Cancel every pending timer, then arm one per planned fire. Returns the number armed."""
        self._cancel_all()
        self.reschedule_count += 1

        if not self.trigger_service.is_actionable(snapshot):
            logger.debug("Scheduler idle: nothing actionable in snapshot")
            return 0

        loop = asyncio.get_running_loop()
        now = self._clock()
        self._gateway_config = snapshot.green_api_config
        for fire in self.trigger_service.plan(snapshot, now):
            if fire.key in self._handles:
                continue
            delay = (fire.fire_at - now).total_seconds()
            self._handles[fire.key] = loop.call_later(delay, self._fire, fire.key)
            self._planned[fire.key] = fire
            logger.debug(f"Armed {fire.trigger_name!r} for {fire.lead_name} at {fire.fire_at.isoformat()}")

        if self._handles:
            logger.info(f"Scheduled {len(self._handles)} pending message(s)")
        return len(self._handles)

    def stop(self):
        """Cancel all pending timers (logout / tenant switch). Safe to call repeatedly."""
        cancelled = len(self._handles)
        self._cancel_all()
        self._gateway_config = None
        if cancelled:
            logger.info(f"Scheduler stopped, cancelled {cancelled} pending message(s)")

    def pending(self) -> Dict[FireKey, datetime]:
        return {key: fire.fire_at for key, fire in self._planned.items()}

    async def wait_idle(self):
        """Wait for in-flight sends started by fired timers."""
        if self._send_tasks:
            await asyncio.gather(*list(self._send_tasks), return_exceptions=True)

    def get_status(self) -> Dict[str, Any]:
        next_fire = min(self._planned.values(), key=lambda f: f.fire_at, default=None)
        return {
            "pending": len(self._handles),
            "in_flight": len(self._send_tasks),
            "fired": self.fired_count,
            "reschedules": self.reschedule_count,
            "next_fire_at": next_fire.fire_at.isoformat() if next_fire else None,
        }

    def _cancel_all(self):
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        self._planned.clear()

    def _fire(self, key: FireKey):
        self._handles.pop(key, None)
        fire = self._planned.pop(key, None)
        if fire is None:
            return
        self.fired_count += 1
        task = asyncio.get_running_loop().create_task(self._dispatch(fire, self._gateway_config))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    async def _dispatch(self, fire: PlannedFire, gateway_config: Optional[GreenApiConfig]):
        logger.info(f"Triggering {fire.trigger_name!r} for {fire.lead_name}")
        try:
            result = await self.gateway.send_message(gateway_config, fire.mobile, fire.message)
        except Exception as e:
            logger.error(f"Error sending {fire.trigger_name!r} to {fire.lead_name}: {e}", exc_info=True)
            return
        if result.success:
            logger.info(f"Sent {fire.trigger_name!r} to {fire.lead_name}: {result.message}")
        else:
            logger.warning(f"Send for {fire.trigger_name!r} to {fire.lead_name} failed: {result.message}")
