# config/base.py
import os


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_int(value, default, *, minimum=None):
    """Parse an integer setting, falling back to ``default`` on bad input."""
    if value is None or str(value).strip() == "":
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    if minimum is not None and number < minimum:
        return default
    return number


class Config:
    # SECRET_KEY must be set via environment variable in production.
    _flask_env = os.environ.get("FLASK_ENV", "development")
    _is_testing = _flask_env == "testing"
    _is_production = _flask_env == "production"

    SECRET_KEY = os.environ.get("SECRET_KEY")

    if not SECRET_KEY and _is_production:
        raise ValueError(
            "SECRET_KEY environment variable is required in production. "
            'Generate with: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    if not SECRET_KEY and not _is_testing:
        import warnings

        warnings.warn(
            "SECRET_KEY not set. Using default for development only. "
            "Set SECRET_KEY environment variable before deploying.",
            UserWarning,
        )
        SECRET_KEY = "dev-secret-key-change-in-production"

    if not SECRET_KEY:
        SECRET_KEY = "test-secret-key-placeholder"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Roster importer configuration
    ROSTER_IMPORT_ENABLED = _coerce_bool(os.environ.get("ROSTER_IMPORT_ENABLED"), default=True)
    ROSTER_DEFAULT_POSITION = os.environ.get("ROSTER_DEFAULT_POSITION", "一般")
    ROSTER_EXECUTIVE_CODE_PREFIX = os.environ.get("ROSTER_EXECUTIVE_CODE_PREFIX", "999999")
    ROSTER_EXECUTIVE_DEPARTMENT_NAME = os.environ.get("ROSTER_EXECUTIVE_DEPARTMENT_NAME", "役員・顧問")
    ROSTER_DEPARTMENT_CODE_LENGTH = _coerce_int(
        os.environ.get("ROSTER_DEPARTMENT_CODE_LENGTH"), 2, minimum=1
    )
    ROSTER_SECTION_CODE_LENGTH = _coerce_int(os.environ.get("ROSTER_SECTION_CODE_LENGTH"), 4, minimum=1)
    if ROSTER_SECTION_CODE_LENGTH <= ROSTER_DEPARTMENT_CODE_LENGTH:
        raise ValueError(
            "ROSTER_SECTION_CODE_LENGTH must be longer than ROSTER_DEPARTMENT_CODE_LENGTH "
            f"(got {ROSTER_SECTION_CODE_LENGTH} <= {ROSTER_DEPARTMENT_CODE_LENGTH})."
        )
    ROSTER_MAX_UPLOAD_MB = _coerce_int(os.environ.get("ROSTER_MAX_UPLOAD_MB"), 10, minimum=1)
    ROSTER_METRICS_ENABLED = _coerce_bool(os.environ.get("ROSTER_METRICS_ENABLED"), default=True)


class DevelopmentConfig(Config):
    DEBUG = True
    # Use instance folder for database to avoid conflicts
    _config_dir = os.path.dirname(os.path.abspath(__file__))
    _project_root = os.path.dirname(_config_dir)
    instance_path = os.path.join(_project_root, "instance")

    if not os.path.exists(instance_path):
        os.makedirs(instance_path, exist_ok=True)

    # SQLite URI format: sqlite:///absolute/path (3 slashes for absolute path)
    db_path = os.path.join(instance_path, "roster_dev.db")
    db_path_normalized = db_path.replace("\\", "/")
    db_uri = f"sqlite:///{db_path_normalized}"

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", db_uri)
    SQLALCHEMY_ECHO = _coerce_bool(os.environ.get("SQLALCHEMY_ECHO"), default=False)
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "connect_args": {
                "check_same_thread": False,
                "timeout": 5,
            }
        }
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {}


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"  # In-memory database for testing
    SQLALCHEMY_ECHO = False
    ROSTER_METRICS_ENABLED = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {
            "check_same_thread": False,
            "timeout": 5,
        }
    }


class ProductionConfig(Config):
    DEBUG = False
    uri = os.environ.get("DATABASE_URL")
    if uri and uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = uri
    SQLALCHEMY_ECHO = False
