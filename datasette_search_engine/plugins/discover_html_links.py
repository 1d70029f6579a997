from ..hookspecs import hookimpl
from ..utils import html_links

@hookimpl
def discover_urls(site_url, url, response):
    return list(set(html_links(response['text'])))
