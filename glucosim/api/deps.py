from fastapi import Depends

from glucosim.core.settings import Settings, get_settings
from glucosim.services.store import DataStore


def get_store(settings: Settings = Depends(get_settings)) -> DataStore:
    return DataStore(data_dir=settings.data.data_dir)
