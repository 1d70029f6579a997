import threading
import pytest
from datasette_search_engine.config import Settings
from datasette_search_engine.crawler import Crawler
from datasette_search_engine.hookspecs import hookimpl
from datasette_search_engine.indexer import IndexingEngine
from datasette_search_engine.lemmatizer import Lemmatizer
from datasette_search_engine.plugin import pm
from datasette_search_engine.storage import Storage

def html_page(title, body, links=()):
    anchors = ''.join('<a href="{}">link</a>'.format(link) for link in links)
    return '<html><head><title>{}</title></head><body><p>{}</p>{}</body></html>'.format(title, body, anchors)

class FakeWeb:
    """An in-memory web, registered as the highest priority fetch_url plugin."""

    def __init__(self):
        self.pages = {}
        self.errors = {}
        self.gates = {}
        self.fetched = []
        self.lock = threading.Lock()

    def add(self, url, html, status_code=200, final_url=None):
        """Serve html at url; final_url is where redirects would have ended up."""
        self.pages[url] = (status_code, html, final_url or url)

    def gate(self, url):
        """Make fetches of url wait until the returned release event is set."""
        reached = threading.Event()
        release = threading.Event()
        self.gates[url] = (reached, release)
        return reached, release

    @hookimpl(tryfirst=True)
    def fetch_url(self, url, request_headers, timeout):
        with self.lock:
            self.fetched.append(url)

        if url in self.gates:
            reached, release = self.gates[url]
            reached.set()
            release.wait(10)

        if url in self.errors:
            return self.errors[url]

        status_code, html, final_url = self.pages.get(url, (404, '<html><body>Not found</body></html>', url))
        return {
            'fetched_at': '2024-01-01 00:00:00',
            'headers': [['content-type', 'text/html; charset=utf-8']],
            'url': final_url,
            'status_code': status_code,
            'text': html,
        }

@pytest.fixture
def web():
    fake = FakeWeb()
    pm.register(fake, name='fake-web')
    yield fake
    pm.unregister(name='fake-web')

@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / 'search.db')

@pytest.fixture
def storage(db_path):
    storage = Storage(db_path)
    storage.ensure_schema()
    yield storage
    storage.close()

@pytest.fixture(scope='session')
def lemmatizer():
    return Lemmatizer()

@pytest.fixture
def lemma(lemmatizer):
    """The single lemma a word indexes as."""
    def inner(word):
        rv = lemmatizer.extract_query_lemmas(word)
        assert len(rv) == 1, rv
        return next(iter(rv))

    return inner

@pytest.fixture
def make_crawler(lemmatizer):
    crawlers = []

    def inner(storage, sites, **settings):
        settings.setdefault('delay', 0)
        settings = Settings(**settings)
        indexer = IndexingEngine(storage, lemmatizer, max_retries=settings.max_retries, backoff=(0, 0.01))
        crawler = Crawler(storage, indexer, sites, settings)
        crawlers.append(crawler)
        return crawler

    yield inner

    for crawler in crawlers:
        if crawler.indexing.is_set():
            crawler.stop_indexing()
        crawler.wait(10)
