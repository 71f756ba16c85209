# Controllers package
from .scheduler_controller import TriggerScheduler
from .session_controller import SessionController

__all__ = ['TriggerScheduler', 'SessionController']
