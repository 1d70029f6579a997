import queue
import threading
import time
from .config import Settings, resolve_site
from .errors import FetchError, DuplicatePageError, StorageError, StorageConnectionError
from .plugin import pm
from .results import ApiResponse
from .schema import INDEXING, INDEXED, FAILED
from .utils import absolutize_url, page_path

def discover_urls(site_url, from_url, response):
    urls = [new_url for urls in pm.hook.discover_urls(site_url=site_url, url=from_url, response=response) for new_url in urls]

    # Resolve relative paths
    urls = [absolutize_url(from_url, new_url) for new_url in urls]
    urls = [x for x in urls if x]

    # Reject non HTTP/HTTPS URLs
    urls = [new_url for new_url in urls if new_url.startswith('https:') or new_url.startswith('http:')]

    new_urls = []
    for to_url in urls:
        attempts = 0
        while attempts < 10:
            # We do max 10 canonicalization attempts to prevent infinite loops from broken
            # plugins.
            attempts += 1
            results = pm.hook.canonicalize_url(site_url=site_url, from_url=from_url, to_url=to_url)

            rewritten = False
            for x in results:
                if isinstance(x, str) and x != to_url:
                    to_url = x
                    rewritten = True
                    break

            if rewritten:
                continue

            if False in results:
                # Someone rejected the URL; this wins.
                break

            new_urls.append(to_url)
            break

    return sorted(set(new_urls))

class SiteRun:
    """One crawl of one configured site.

    A fixed number of worker threads pull URLs from a shared queue. A URL is
    processed by whichever worker claims its path first; everyone else skips it.
    """

    def __init__(self, crawler, site_config):
        self.crawler = crawler
        self.site_config = site_config
        self.site = None
        self.queue = queue.Queue()
        self.claimed = set()
        self.claimed_lock = threading.Lock()
        self.cancelled = threading.Event()
        self.finished = threading.Event()
        self.error = None

    def active(self):
        return self.crawler.indexing.is_set() and not self.cancelled.is_set() and self.error is None

    def claim(self, url):
        """Atomically claim url for this run. False if someone already has it."""
        key = page_path(self.site_config.url, url)
        with self.claimed_lock:
            if key in self.claimed:
                return False
            self.claimed.add(key)
            return True

    def seen(self, url):
        with self.claimed_lock:
            return page_path(self.site_config.url, url) in self.claimed

    def cancel(self):
        self.cancelled.set()
        self.discard_queued()

    def fail(self, e):
        with self.claimed_lock:
            if self.error is None:
                self.error = e
        self.discard_queued()

    def discard_queued(self):
        while True:
            try:
                self.queue.get_nowait()
            except queue.Empty:
                return
            self.queue.task_done()

    def traverse(self):
        self.queue.put(self.site_config.url)

        threads = []
        for i in range(max(1, self.crawler.settings.workers)):
            t = threading.Thread(target=self.worker, name='crawl-{}-{}'.format(self.site.id, i), daemon=True)
            t.start()
            threads.append(t)

        # Children are queued before their parent is marked done, so this only
        # returns once the whole tree has been processed or discarded.
        self.queue.join()
        self.finished.set()

        for t in threads:
            t.join()

        if self.error is not None:
            raise self.error

    def worker(self):
        try:
            while not self.finished.is_set():
                try:
                    url = self.queue.get(timeout=0.05)
                except queue.Empty:
                    continue

                try:
                    self.crawl(url)
                except StorageConnectionError as e:
                    print('crawl: lost the database while crawling url={}: {}'.format(url, e))
                    self.fail(e)
                except Exception as e:
                    print('crawl: error on url={}: {!r}'.format(url, e))
                finally:
                    self.queue.task_done()
        finally:
            self.crawler.storage.close()

    def crawl(self, url):
        if not self.active() or not self.claim(url):
            return

        response = self.crawler.fetch(url)

        if isinstance(response, FetchError):
            print('crawl: skipping url={} reason={}'.format(url, type(response).__name__))
            return

        if not self.active():
            return

        page = self.crawler.store_page(self.site, self.site_config.url, url, response, self.active)
        if page is None:
            return

        # Links are relative to the final URL after redirects.
        base_url = response.get('url') or url
        for link in discover_urls(self.site_config.url, base_url, response):
            if not self.active():
                return

            if not self.seen(link):
                self.queue.put(link)

class Crawler:
    """Owns the indexing flag and every active site-run."""

    def __init__(self, storage, indexer, sites, settings=None):
        self.storage = storage
        self.indexer = indexer
        self.sites = list(sites)
        self.settings = settings or Settings()
        self.indexing = threading.Event()
        self.lock = threading.Lock()
        self.runs = []
        self.threads = []

    def start_indexing(self):
        with self.lock:
            if self.indexing.is_set():
                return ApiResponse(False, 'Indexing is already running')

            if not self.sites:
                return ApiResponse(False, 'No sites are configured')

            previous = list(self.threads)

        # Runs cancelled by stop_indexing may still be storing a page; they must
        # be gone before their sites are purged.
        for t in previous:
            t.join()

        with self.lock:
            if self.indexing.is_set():
                return ApiResponse(False, 'Indexing is already running')

            self.indexing.set()
            self.runs = [SiteRun(self, site_config) for site_config in self.sites]
            self.threads = [
                threading.Thread(target=self.run_site_thread, args=(run, ), name='site-run-{}'.format(i), daemon=True)
                for i, run in enumerate(self.runs)
            ]
            threads = list(self.threads)

        for t in threads:
            t.start()

        return ApiResponse(True)

    def stop_indexing(self):
        with self.lock:
            if not self.indexing.is_set():
                return ApiResponse(False, 'Indexing is not running')

            self.indexing.clear()
            runs, self.runs = self.runs, []

        for run in runs:
            run.cancel()
        print('crawl: stopped {} site runs'.format(len(runs)))

        # A manual stop is not a failure: whatever was indexed so far is searchable.
        try:
            for site_config in self.sites:
                site = self.storage.find_site_by_url(site_config.url)
                if site is not None and site.status == INDEXING:
                    self.storage.update_site_status(site.id, INDEXED)
        except StorageError as e:
            return ApiResponse(False, 'Unable to update site status: {}'.format(e))

        return ApiResponse(True)

    def wait(self, timeout=None):
        """Block until every site-run started by the last start_indexing has ended."""
        for t in list(self.threads):
            t.join(timeout)

    def run_site_thread(self, run):
        try:
            self.run_site(run)
        finally:
            with self.lock:
                if run in self.runs:
                    self.runs.remove(run)
                if not self.runs:
                    self.indexing.clear()

    def run_site(self, run):
        site_config = run.site_config
        if not run.active():
            return

        print('crawl: starting site={}'.format(site_config.url))
        try:
            self.storage.delete_site(site_config.url)
            run.site = self.storage.create_site(site_config.url, site_config.name, INDEXING)
            run.traverse()

            if run.active():
                self.storage.update_site_status(run.site.id, INDEXED)
                print('crawl: finished site={} pages={}'.format(site_config.url, self.storage.count_pages(run.site.id)))
            elif run.cancelled.is_set():
                # stop_indexing may have swept the sites before this one was created.
                site = self.storage.find_site(run.site.id)
                if site is not None and site.status == INDEXING:
                    self.storage.update_site_status(site.id, INDEXED)
        except Exception as e:
            print('crawl: site={} failed: {!r}'.format(site_config.url, e))
            if run.site is not None and self.indexing.is_set() and not run.cancelled.is_set():
                try:
                    self.storage.update_site_status(run.site.id, FAILED, str(e) or repr(e))
                except StorageError as e2:
                    print('crawl: unable to record failure for site={}: {}'.format(site_config.url, e2))
        finally:
            self.storage.close()

    def fetch(self, url):
        """Fetch url politely. Returns a response dict or a FetchError."""
        time.sleep(self.settings.delay)

        request_headers = {
            'User-Agent': self.settings.user_agent,
            'Referer': self.settings.referrer,
        }
        response = pm.hook.fetch_url(url=url, request_headers=request_headers, timeout=self.settings.timeout)

        if response is None:
            # Weird, this should be impossible.
            return FetchError(url, 'no fetch_url plugin returned a response')

        return response

    def store_page(self, site, site_url, url, response, active):
        """Record a fetched page and index it. Returns None if the page was already stored."""
        path = page_path(site_url, url)
        status_code = response['status_code']

        try:
            page = self.storage.insert_page(site.id, path, status_code, response['text'])
        except DuplicatePageError:
            print('crawl: page already stored site_id={} path={}'.format(site.id, path))
            return None

        if 200 <= status_code < 400 and active():
            self.indexer.index_page_content(page, response['text'])

        if active():
            self.storage.touch_site(site.id)

        return page

    def index_page(self, url):
        """Fetch and index a single page, replacing any previous copy of it."""
        site_config = resolve_site(self.sites, url)
        if site_config is None:
            return ApiResponse(False, 'This page is outside the sites listed in the configuration')

        try:
            site = self.storage.find_site_by_url(site_config.url)
            if site is None:
                site = self.storage.create_site(site_config.url, site_config.name, INDEXED)

            path = page_path(site_config.url, url)
            existing = self.storage.find_page(site.id, path)
            if existing is not None:
                self.storage.delete_page(existing.id)

            response = self.fetch(url)
            if isinstance(response, FetchError):
                return ApiResponse(False, 'Unable to fetch page: {}'.format(response))

            if self.store_page(site, site_config.url, url, response, lambda: True) is None:
                return ApiResponse(False, 'Page {} was indexed concurrently, try again'.format(url))

            return ApiResponse(True)
        except StorageError as e:
            print('crawl: failed to index url={}: {}'.format(url, e))
            return ApiResponse(False, 'Error while indexing page: {}'.format(e))
