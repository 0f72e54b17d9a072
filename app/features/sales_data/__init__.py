"""Sales data feature: loader, cache, debounced writes and HTTP routes."""

from app.features.sales_data.config import DataServiceConfig
from app.features.sales_data.service import DataService, load_with_pagination
from app.features.sales_data.store import DataStore, Predicate, RowQuery, SqlAlchemyDataStore

__all__ = [
    "DataService",
    "DataServiceConfig",
    "DataStore",
    "Predicate",
    "RowQuery",
    "SqlAlchemyDataStore",
    "load_with_pagination",
]
