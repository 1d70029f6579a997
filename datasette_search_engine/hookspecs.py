from pluggy import HookimplMarker
from pluggy import HookspecMarker

hookspec = HookspecMarker("datasette_search_engine")
hookimpl = HookimplMarker("datasette_search_engine")

@hookspec(firstresult=True)
def fetch_url(url, request_headers, timeout):
    """Fetch a URL live from an origin server.

    Returns a response dict (fetched_at, headers, url, status_code, text), or a
    FetchError instance describing why the page couldn't be fetched."""

@hookspec()
def discover_urls(site_url, url, response):
    """Discover new URLs to crawl."""

@hookspec()
def canonicalize_url(site_url, from_url, to_url):
    """Canonicalize a discovered URL: return False to reject it, or a string to rewrite it."""
