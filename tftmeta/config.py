import os
from typing import Dict, Any, List, Optional

from dotenv import load_dotenv

from tftmeta.utils.exceptions import ConfigurationError

load_dotenv()


def _env_int(key: str, fallback: int) -> int:
    value = os.getenv(key)
    if value:
        try:
            return int(value)
        except ValueError:
            return fallback
    return fallback


def _env_bool(key: str, fallback: bool) -> bool:
    value = os.getenv(key)
    if value:
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return fallback


def _env_list(key: str, fallback: str = '') -> List[str]:
    raw = os.getenv(key, fallback)
    return [part.strip() for part in raw.split(',') if part.strip()]


class Config:
    """Engine configuration settings"""

    # Environment
    ENVIRONMENT = 'development'
    DEBUG = False
    LOG_DIR = 'logs'

    # Storage
    DATABASE_URL = 'sqlite:///tft_meta.db'
    REDIS_URL: Optional[str] = None

    # Query defaults
    DEFAULT_PATCH = '15.2c'
    DEFAULT_REGION = 'kr'
    DEFAULT_TIER = 'CHALLENGER'
    KNOWN_PATCHES: List[str] = []

    # Cache TTLs (seconds)
    CACHE_DEFAULT_TTL = 300
    CACHE_COMPOSITION_TTL = 3600
    CACHE_META_TTL = 7200
    CACHE_LEADERBOARD_TTL = 1800
    CACHE_PLAYER_TTL = 900
    CACHE_FILTERS_TTL = 3600
    CACHE_MAX_SIZE = 500

    # Engine settings
    MERGE_MAX_RETRIES = 3
    SNAPSHOT_TOP_N = 10
    RECENT_GAMES_LIMIT = 20

    # Metrics
    METRICS_ENABLED = False
    METRICS_HOST = '0.0.0.0'
    METRICS_PORT = '9090'
    METRICS_PATH = '/metrics'

    @classmethod
    def reload(cls):
        """Re-read every setting from the process environment"""
        cls.ENVIRONMENT = os.getenv('ENVIRONMENT', 'development').lower()
        cls.DEBUG = _env_bool('DEBUG', False)
        cls.LOG_DIR = os.getenv('LOG_DIR', 'logs')

        cls.DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///tft_meta.db')
        cls.REDIS_URL = os.getenv('REDIS_URL') or None

        cls.DEFAULT_PATCH = os.getenv('DEFAULT_PATCH', '15.2c')
        cls.DEFAULT_REGION = os.getenv('DEFAULT_REGION', 'kr').lower()
        cls.DEFAULT_TIER = os.getenv('DEFAULT_TIER', 'CHALLENGER').upper()
        cls.KNOWN_PATCHES = _env_list('KNOWN_PATCHES')

        cls.CACHE_DEFAULT_TTL = _env_int('CACHE_DEFAULT_TTL', 300)
        cls.CACHE_COMPOSITION_TTL = _env_int('CACHE_COMPOSITION_TTL', 3600)
        cls.CACHE_META_TTL = _env_int('CACHE_META_TTL', 7200)
        cls.CACHE_LEADERBOARD_TTL = _env_int('CACHE_LEADERBOARD_TTL', 1800)
        cls.CACHE_PLAYER_TTL = _env_int('CACHE_PLAYER_TTL', 900)
        cls.CACHE_FILTERS_TTL = _env_int('CACHE_FILTERS_TTL', 3600)
        cls.CACHE_MAX_SIZE = _env_int('CACHE_MAX_SIZE', 500)

        cls.MERGE_MAX_RETRIES = _env_int('MERGE_MAX_RETRIES', 3)
        cls.SNAPSHOT_TOP_N = _env_int('SNAPSHOT_TOP_N', 10)
        cls.RECENT_GAMES_LIMIT = _env_int('RECENT_GAMES_LIMIT', 20)

        cls.METRICS_ENABLED = _env_bool('METRICS_ENABLED', False)
        cls.METRICS_HOST = os.getenv('METRICS_HOST', '0.0.0.0')
        cls.METRICS_PORT = os.getenv('METRICS_PORT', '9090')
        cls.METRICS_PATH = os.getenv('METRICS_PATH', '/metrics')

    @classmethod
    def load(cls, env_file: Optional[str] = None):
        """Load an explicit env file on top of the environment, then re-read settings"""
        if env_file:
            if not os.path.exists(env_file):
                raise ConfigurationError([f"env file '{env_file}' does not exist"])
            load_dotenv(env_file, override=True)
        cls.reload()
        return cls

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == 'production'

    @classmethod
    def validate(cls):
        """Validate configuration, reporting every problem at once"""
        from tftmeta.constants import Region, RankTier

        problems = []
        if cls.ENVIRONMENT not in ('development', 'staging', 'production'):
            problems.append("ENVIRONMENT must be one of development, staging, production")
        if not cls.DATABASE_URL:
            problems.append("DATABASE_URL is required")
        if not cls.DEFAULT_PATCH:
            problems.append("DEFAULT_PATCH is required")
        if Region.parse(cls.DEFAULT_REGION) is None:
            problems.append(f"DEFAULT_REGION '{cls.DEFAULT_REGION}' is not a known region")
        if RankTier.parse(cls.DEFAULT_TIER) is None:
            problems.append(f"DEFAULT_TIER '{cls.DEFAULT_TIER}' is not a known rank tier")

        for name in ('CACHE_DEFAULT_TTL', 'CACHE_COMPOSITION_TTL', 'CACHE_META_TTL',
                     'CACHE_LEADERBOARD_TTL', 'CACHE_PLAYER_TTL', 'CACHE_FILTERS_TTL'):
            if getattr(cls, name) <= 0:
                problems.append(f"{name} must be positive")
        if cls.CACHE_MAX_SIZE < 1:
            problems.append("CACHE_MAX_SIZE must be at least 1")
        if cls.MERGE_MAX_RETRIES < 1:
            problems.append("MERGE_MAX_RETRIES must be at least 1")
        if cls.SNAPSHOT_TOP_N < 1:
            problems.append("SNAPSHOT_TOP_N must be at least 1")

        # Metrics endpoint settings are only required when metrics are enabled
        if cls.METRICS_ENABLED:
            for name in ('METRICS_HOST', 'METRICS_PORT', 'METRICS_PATH'):
                if not getattr(cls, name):
                    problems.append(f"{name} is required when METRICS_ENABLED is true")

        if cls.is_production() and cls.DEBUG:
            problems.append("DEBUG must be disabled in production")

        if problems:
            raise ConfigurationError(problems)

    @classmethod
    def get_known_patches(cls) -> List[str]:
        """Known patches, always including the default patch"""
        patches = list(cls.KNOWN_PATCHES)
        if cls.DEFAULT_PATCH and cls.DEFAULT_PATCH not in patches:
            patches.append(cls.DEFAULT_PATCH)
        return patches

    @classmethod
    def summary(cls) -> Dict[str, Any]:
        """Printable configuration summary with secrets masked"""
        return {
            'environment': cls.ENVIRONMENT,
            'debug': cls.DEBUG,
            'database': _mask_url(cls.DATABASE_URL),
            'redis': _mask_url(cls.REDIS_URL) if cls.REDIS_URL else 'disabled',
            'defaults': {
                'patch': cls.DEFAULT_PATCH,
                'region': cls.DEFAULT_REGION,
                'tier': cls.DEFAULT_TIER,
            },
            'cache_ttl': {
                'default': cls.CACHE_DEFAULT_TTL,
                'composition': cls.CACHE_COMPOSITION_TTL,
                'meta': cls.CACHE_META_TTL,
                'filters': cls.CACHE_FILTERS_TTL,
            },
            'metrics': (
                f"{cls.METRICS_HOST}:{cls.METRICS_PORT}{cls.METRICS_PATH}"
                if cls.METRICS_ENABLED else 'disabled'
            ),
        }


def _mask_url(url: str) -> str:
    """Hide the password part of a connection URL"""
    if '@' not in url or '://' not in url:
        return url
    scheme, rest = url.split('://', 1)
    credentials, host = rest.rsplit('@', 1)
    user = credentials.split(':', 1)[0]
    return f"{scheme}://{user}:***@{host}"


Config.reload()
