from .models import StorageSettings
from .store import SettingsStore

__all__ = [
    "StorageSettings",
    "SettingsStore",
]
