import re
import sqlite3
import threading
from selectolax.parser import HTMLParser
from urllib.parse import urljoin
from .config import ensure_wal_mode

_whitespace_re = re.compile(r'\s+')

def lazy_connection_factory(path, timeout=5.0):
    """Return a function that hands out one sqlite connection per thread."""
    local = threading.local()

    def get_db():
        conn = getattr(local, 'conn', None)
        if conn is not None:
            return conn

        conn = sqlite3.connect(path, timeout=timeout)
        conn.isolation_level = None
        ensure_wal_mode(conn)

        # See https://www.sqlite.org/pragma.html#pragma_synchronous; this is much faster,
        # at the expense of durability in the event of an unplanned shutdown.
        conn.execute('pragma synchronous = normal;')
        conn.execute('pragma foreign_keys = on;')
        local.conn = conn
        return conn

    def close_db():
        conn = getattr(local, 'conn', None)
        if conn is not None:
            local.conn = None
            conn.close()

    get_db.close = close_db
    return get_db

def html_text(html):
    """Plain text of a document, title included, with whitespace collapsed."""
    if not html:
        return ''

    tree = HTMLParser(html)
    tree.strip_tags(['script', 'style', 'noscript'])
    if tree.root is None:
        return ''

    return _whitespace_re.sub(' ', tree.root.text(separator=' ')).strip()

def html_title(html):
    if not html:
        return ''

    node = HTMLParser(html).css_first('title')
    if node is None:
        return ''

    return _whitespace_re.sub(' ', node.text()).strip()

def html_links(html):
    rv = []
    for node in HTMLParser(html).css('a[href]'):
        href = node.attributes.get('href')
        if href and href.strip():
            rv.append(href.strip())

    return rv

def absolutize_url(base_url, new_url):
    try:
        return urljoin(base_url, new_url)
    except ValueError:
        return None

def page_path(site_url, url):
    """The path of url relative to its site; always starts with /."""
    path = url[len(site_url):] if url.startswith(site_url) else url
    if not path.startswith('/'):
        path = '/' + path

    return path
