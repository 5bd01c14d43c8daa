import duckdb
from sqlalchemy.exc import SQLAlchemyError

from .base import AnalyticsStore, GuideState, classify_guide
from .sql_store import SqlGuideStore

# Driver-level failures that services translate into StoreError.
STORE_ERRORS = (SQLAlchemyError, duckdb.Error, FileNotFoundError)

__all__ = ["AnalyticsStore", "GuideState", "STORE_ERRORS", "SqlGuideStore", "classify_guide"]
