"""
Client for the ShelfGuard inventory API with an offline edit queue.
"""

from .api import InventoryApiClient
from .config import ClientConfig
from .connectivity import Connectivity
from .editor import ProductEditor, SaveStatus
from .queue import EditStatus, OfflineEditQueue
from .storage import MemoryQueueStorage, QueueStorage

__all__ = [
    'ClientConfig',
    'Connectivity',
    'EditStatus',
    'InventoryApiClient',
    'MemoryQueueStorage',
    'OfflineEditQueue',
    'ProductEditor',
    'QueueStorage',
    'SaveStatus',
]
