import os

from dotenv import load_dotenv

load_dotenv()


def resolve_database_uri() -> str:
    """Ensure SQLAlchemy gets a usable connection string without hard-coded credentials."""
    default_uri = "sqlite:///guides.db"
    raw_uri = os.getenv("DATABASE_URL", default_uri)
    if raw_uri.startswith("postgresql://"):
        return raw_uri.replace("postgresql://", "postgresql+psycopg://", 1)
    return raw_uri


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


class BaseConfig:
    SQLALCHEMY_DATABASE_URI = resolve_database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    AUTO_CREATE_TABLES = _env_flag("AUTO_CREATE_TABLES", "true")
    DUCKDB_PATH = os.getenv("DUCKDB_PATH", os.path.join("instance", "guides_read.duckdb"))
    ANALYTICS_BACKEND = os.getenv("ANALYTICS_BACKEND", "sql").lower()
    SERVICE_NAME = os.getenv("SERVICE_NAME", "ms-guide")
    API_TITLE = os.getenv("API_TITLE", "Guide Service API")
    API_VERSION = os.getenv("API_VERSION", "1.0.0")
    API_KEY = os.getenv("API_KEY", "your-api-key-here")
    DEFAULT_TENANT_ID = os.getenv("DEFAULT_TENANT_ID", "hosp_sagrada_familia_001")
    PAGINATION_MAX_LIMIT = int(os.getenv("PAGINATION_MAX_LIMIT", "100"))
    USE_EVENT_BUS = _env_flag("USE_EVENT_BUS")
    EVENT_BUS_URL = os.getenv("EVENT_BUS_URL", "")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    AUTO_CREATE_TABLES = False
    ANALYTICS_BACKEND = "sql"
    API_KEY = "test-api-key"
    DEFAULT_TENANT_ID = "hosp_test_001"
    USE_EVENT_BUS = False
    EVENT_BUS_URL = ""


class ProductionConfig(BaseConfig):
    DEBUG = False


config_by_name = {
    "default": BaseConfig,
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
