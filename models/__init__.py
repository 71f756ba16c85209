# Models package
from .config import Config
from .lead import Lead, LeadStatus
from .meeting import Meeting
from .template import MessageTemplate, render_template
from .tenant import Admin, GreenApiConfig, LandingPage, TenantSnapshot
from .trigger import FlowStep, Trigger, TriggerConfig, TriggerType

__all__ = [
    'Config', 'Lead', 'LeadStatus', 'Meeting', 'MessageTemplate', 'render_template',
    'Admin', 'GreenApiConfig', 'LandingPage', 'TenantSnapshot',
    'FlowStep', 'Trigger', 'TriggerConfig', 'TriggerType',
]
