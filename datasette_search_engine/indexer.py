import random
import time
from .errors import StorageError, StorageContentionError, StorageConnectionError
from .utils import html_text

class IndexingEngine:
    """Writes one page's lemmas and postings.

    Pages of the same site are indexed concurrently and race to bump the same
    lemma rows, so a contended write is retried a few times with jitter.
    """

    def __init__(self, storage, lemmatizer, max_retries=3, backoff=(0.05, 0.15)):
        self.storage = storage
        self.lemmatizer = lemmatizer
        self.max_retries = max_retries
        self.backoff = backoff

    def index_page_content(self, page, html):
        """Index a stored page. Returns False if the page was left unindexed.

        StorageConnectionError propagates: the database is gone, not just busy."""
        lemmas = self.lemmatizer.collect(html_text(html))
        if not lemmas:
            return True

        for attempt in range(1, self.max_retries + 1):
            try:
                self.write_lemmas(page, lemmas)
                return True
            except StorageContentionError as e:
                if attempt < self.max_retries:
                    print('index: contention on page_id={} path={} (attempt {}/{}): {}'.format(page.id, page.path, attempt, self.max_retries, e))
                    time.sleep(random.uniform(*self.backoff))
                else:
                    print('index: giving up on page_id={} path={} after {} attempts'.format(page.id, page.path, self.max_retries))
            except StorageConnectionError:
                raise
            except StorageError as e:
                print('index: failed to index page_id={} path={}: {}'.format(page.id, page.path, e))
                return False

        return False

    def write_lemmas(self, page, lemmas):
        with self.storage.transaction():
            # Document frequency: +1 per page, however often the lemma occurs on it.
            for lemma in lemmas:
                self.storage.upsert_lemma(page.site_id, lemma, 1)

            rows = self.storage.find_lemmas(page.site_id, lemmas.keys())
            self.storage.insert_postings(page.id, [(row.id, lemmas[row.lemma]) for row in rows if row.lemma in lemmas])
