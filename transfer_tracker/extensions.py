# transfer_tracker/extensions.py

from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_wtf.csrf import CSRFProtect
from sqlalchemy.engine.url import make_url

from transfer_tracker.storage import BlobStorage


def engine_options(config):
    """Build SQLAlchemy engine options for the configured database.

    Args:
        config: Flask config mapping

    Returns:
        dict: Options passed to ``create_engine``
    """
    url = make_url(config['SQLALCHEMY_DATABASE_URI'])

    # Common options safe for all databases
    options = {
        'pool_pre_ping': True,
    }

    # Pool sizing only makes sense for non-SQLite databases
    if not url.drivername.startswith('sqlite'):
        options.update({
            'pool_size': config.get('SQLALCHEMY_POOL_SIZE', 10),
            'pool_recycle': config.get('SQLALCHEMY_POOL_RECYCLE', 300),
            'pool_timeout': config.get('SQLALCHEMY_POOL_TIMEOUT', 20),
            'max_overflow': config.get('SQLALCHEMY_MAX_OVERFLOW', 5),
        })

        if url.drivername.startswith('postgresql'):
            options['connect_args'] = {
                'connect_timeout': config.get('SQLALCHEMY_CONNECT_TIMEOUT', 10),
                'keepalives': 1,
                'keepalives_idle': 30,
                'keepalives_interval': 10,
                'keepalives_count': 5
            }
        elif url.drivername.startswith('mysql'):
            options['connect_args'] = {
                'connect_timeout': config.get('SQLALCHEMY_CONNECT_TIMEOUT', 10)
            }

    return options


# Initialize Flask extensions
db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
csrf = CSRFProtect()
limiter = Limiter(key_func=get_remote_address)  # Storage from RATELIMIT_STORAGE_URI
blob_storage = BlobStorage()
