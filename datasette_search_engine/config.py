from collections import namedtuple
from urllib.parse import urlparse
from .schema import current_schema_version, schema
from .errors import ConfigError, SearchEngineError

_plugin_name = 'datasette-search-engine'

_enabled_databases = None

DEFAULT_USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'
DEFAULT_REFERRER = 'http://www.google.com'

SiteConfig = namedtuple('SiteConfig', ['url', 'name'])

Settings = namedtuple(
    'Settings',
    ['user_agent', 'referrer', 'timeout', 'delay', 'workers', 'max_retries', 'max_frequency_ratio', 'min_word_length'],
    defaults=(DEFAULT_USER_AGENT, DEFAULT_REFERRER, 10.0, 0.15, 2, 3, 0.8, 3)
)

# config key -> (Settings field, type)
_setting_keys = {
    'user-agent': ('user_agent', str),
    'referrer': ('referrer', str),
    'timeout': ('timeout', float),
    'delay': ('delay', float),
    'workers': ('workers', int),
    'max-retries': ('max_retries', int),
    'max-frequency-ratio': ('max_frequency_ratio', float),
    'min-word-length': ('min_word_length', int),
}

def enabled_databases(datasette, empty_if_not_initialized=False):
    global _enabled_databases

    if not _enabled_databases is None:
        return _enabled_databases

    if empty_if_not_initialized:
        return []

    rv = []

    for db_name in datasette.databases:
        local_config = datasette.plugin_config(_plugin_name, db_name)

        if local_config is None:
            continue

        rv.append(db_name)

    _enabled_databases = rv
    return _enabled_databases

def get_sites(config):
    rv = []
    for entry in (config or {}).get('sites', []):
        if isinstance(entry, str):
            entry = {'url': entry}

        url = entry.get('url') if isinstance(entry, dict) else None
        if not url or not (url.startswith('http://') or url.startswith('https://')):
            raise ConfigError('{}: site entries need an http(s) url, got {!r}'.format(_plugin_name, entry))

        name = entry.get('name') or urlparse(url).hostname
        rv.append(SiteConfig(url, name))

    return rv

def get_settings(config):
    config = config or {}
    values = {}
    for key, (field, type_) in _setting_keys.items():
        if not key in config:
            continue

        try:
            values[field] = type_(config[key])
        except (TypeError, ValueError):
            raise ConfigError('{}: invalid value for {}: {!r}'.format(_plugin_name, key, config[key]))

    return Settings(**values)

def resolve_site(sites, url):
    """Return the configured site whose URL is the longest prefix of url, or None."""
    best = None
    for site in sites:
        if url.startswith(site.url) and (best is None or len(site.url) > len(best.url)):
            best = site

    return best

def ensure_wal_mode(conn):
    old_level = conn.isolation_level
    try:
        conn.isolation_level = None
        mode, = conn.execute('PRAGMA journal_mode=WAL').fetchone()
        if mode != 'wal':
            raise SearchEngineError('unable to set PRAGMA journal_mode=WAL on connection, got {}'.format(mode))
    finally:
        conn.isolation_level = old_level

def install_schema(conn, db_name=None):
    ensure_wal_mode(conn)

    v, = conn.execute('PRAGMA user_version').fetchone()

    if not v:
        print('Installing datasette-search-engine schema into db {}'.format(db_name or '?'))
        conn.executescript(schema)
    elif v == current_schema_version:
        pass
    else:
        raise SearchEngineError('unsupported schema version in db {}: {} -- you may need to give datasette-search-engine its own database'.format(db_name or '?', v))

async def get_db_version(db):
    results = await db.execute('pragma user_version')
    for row in results:
        return row['user_version']

async def ensure_schema(db):
    def ensure_schema_internal(conn):
        install_schema(conn, db.name)

    await db.execute_write_fn(ensure_schema_internal, block=True)
    version = await get_db_version(db)

    if version != current_schema_version:
        raise SearchEngineError('unable to ensure schema in database {} (version={}; desired={}); please check that the database is mutable and not the _memory database'.format(db.name, version, current_schema_version))
