from ..hookspecs import hookimpl

@hookimpl
def canonicalize_url(site_url, from_url, to_url):
    # Scope is a plain prefix match against the configured site URL.
    return to_url.startswith(site_url)
