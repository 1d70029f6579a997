class SearchEngineError(Exception):
    pass

class ConfigError(SearchEngineError):
    pass

# Storage

class StorageError(SearchEngineError):
    pass

class StorageContentionError(StorageError):
    """Another writer holds the lock; safe to retry."""

class StorageConnectionError(StorageError):
    """The database can't be reached at all. Fatal to a site-run."""

class DuplicatePageError(StorageError):
    """A page with this (site, path) already exists."""

# Fetching. These are returned by the fetch_url hook, not raised.

class FetchError(SearchEngineError):
    def __init__(self, url, reason):
        super().__init__('{}: {}'.format(url, reason))
        self.url = url
        self.reason = reason

class TlsError(FetchError):
    pass

class FetchTimeoutError(FetchError):
    pass

class UnsupportedContentTypeError(FetchError):
    pass
