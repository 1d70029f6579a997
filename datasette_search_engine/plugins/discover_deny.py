from ..hookspecs import hookimpl
from urllib.parse import urlsplit
import re

# Files that are never HTML.
DENY_EXTENSIONS_RE = re.compile('(?i)[.](jpg|jpeg|png|gif|webp|svg|ico|bmp|tiff|pdf|zip|rar|7z|tar|gz|doc|docx|xls|xlsx|ppt|pptx|mp3|mp4|avi|mov|wmv|flv|css|js)$')

@hookimpl
def canonicalize_url(site_url, from_url, to_url):
    if '#' in to_url:
        return False

    if DENY_EXTENSIONS_RE.search(urlsplit(to_url).path):
        return False
