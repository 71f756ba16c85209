# Services package
from .account_service import AccountService, TenantSeedError
from .crm_service import CrmService
from .document_store import DocumentStore, DocumentStoreError, MemoryDocumentStore, Subscription
from .green_api_service import GreenApiService, SendResult
from .redis_service import RedisDocumentStore
from .store_factory import create_store
from .sync_service import SyncService
from .trigger_service import FireKey, PlannedFire, TriggerService

__all__ = [
    'AccountService', 'TenantSeedError', 'CrmService', 'DocumentStore', 'DocumentStoreError',
    'MemoryDocumentStore', 'Subscription', 'GreenApiService', 'SendResult', 'RedisDocumentStore',
    'SyncService', 'FireKey', 'PlannedFire', 'TriggerService', 'create_store',
]
