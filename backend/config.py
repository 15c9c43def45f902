import os


def _env_bool(name, default=False):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y")


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'devkey')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///staysync.sqlite')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}

    API_VERSION = os.getenv('API_VERSION', 'v1')
    APP_VERSION = '1.0.0'
    PORT = int(os.getenv('PORT', '3000'))
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    RATE_LIMIT_ENABLED = _env_bool('RATE_LIMIT_ENABLED', True)
    RATE_LIMIT_WINDOW = int(os.getenv('RATE_LIMIT_WINDOW', str(15 * 60)))
    RATE_LIMIT_MAX = int(os.getenv('RATE_LIMIT_MAX', '100'))

    ALLOW_PAST_CHECK_IN = _env_bool('ALLOW_PAST_CHECK_IN', False)
    BUSINESS_TAX_RATE = float(os.getenv('BUSINESS_TAX_RATE', '0.05'))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATE_LIMIT_ENABLED = False
    ALLOW_PAST_CHECK_IN = True
    LOG_LEVEL = 'WARNING'
