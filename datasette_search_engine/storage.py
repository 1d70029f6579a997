import functools
import sqlite3
from collections import namedtuple
from contextlib import contextmanager
from more_itertools import batched
from .config import install_schema
from .errors import StorageError, StorageContentionError, StorageConnectionError, DuplicatePageError
from .schema import INDEXING
from .utils import lazy_connection_factory

Site = namedtuple('Site', ['id', 'url', 'name', 'status', 'status_time', 'last_error'])
Page = namedtuple('Page', ['id', 'site_id', 'path', 'code', 'content'])
Lemma = namedtuple('Lemma', ['id', 'site_id', 'lemma', 'frequency'])

_site_columns = 'id, url, name, status, status_time, last_error'
_page_columns = 'id, site_id, path, code, content'
_lemma_columns = 'id, site_id, lemma, frequency'

# Stay well under SQLITE_MAX_VARIABLE_NUMBER.
batch_size = 500

def translate_error(e):
    msg = str(e).lower()

    if isinstance(e, sqlite3.IntegrityError) and 'dse_page' in msg:
        return DuplicatePageError(str(e))

    if isinstance(e, sqlite3.OperationalError):
        if 'locked' in msg or 'busy' in msg:
            return StorageContentionError(str(e))
        if 'unable to open' in msg or 'disk i/o' in msg:
            return StorageConnectionError(str(e))

    return StorageError(str(e))

def storage_op(fn):
    @functools.wraps(fn)
    def inner(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except sqlite3.Error as e:
            raise translate_error(e) from e

    return inner

class Storage:
    """Sites, pages, lemmas and postings in a SQLite database.

    Each thread gets its own connection. Statements auto-commit unless they
    run inside transaction(), which nests by joining the outer transaction.
    """

    def __init__(self, path, timeout=5.0):
        self.path = path
        self.factory = lazy_connection_factory(path, timeout)

    @storage_op
    def conn(self):
        return self.factory()

    def close(self):
        """Close the calling thread's connection."""
        self.factory.close()

    @storage_op
    def ensure_schema(self):
        install_schema(self.conn(), self.path)

    @contextmanager
    def transaction(self):
        conn = self.conn()
        if conn.in_transaction:
            yield conn
            return

        try:
            with conn:
                conn.execute('BEGIN IMMEDIATE')
                yield conn
        except sqlite3.Error as e:
            raise translate_error(e) from e

    # Sites

    @storage_op
    def find_site_by_url(self, url):
        row = self.conn().execute('SELECT {} FROM dse_site WHERE url = ? ORDER BY id DESC LIMIT 1'.format(_site_columns), [url]).fetchone()
        return Site(*row) if row else None

    @storage_op
    def find_site(self, site_id):
        row = self.conn().execute('SELECT {} FROM dse_site WHERE id = ?'.format(_site_columns), [site_id]).fetchone()
        return Site(*row) if row else None

    @storage_op
    def all_sites(self):
        return [Site(*row) for row in self.conn().execute('SELECT {} FROM dse_site ORDER BY id'.format(_site_columns))]

    @storage_op
    def create_site(self, url, name, status=INDEXING):
        cur = self.conn().execute('INSERT INTO dse_site(url, name, status) VALUES (?, ?, ?)', [url, name, status])
        return self.find_site(cur.lastrowid)

    @storage_op
    def update_site_status(self, site_id, status, last_error=None):
        self.conn().execute("UPDATE dse_site SET status = ?, last_error = ?, status_time = strftime('%Y-%m-%d %H:%M:%f') WHERE id = ?", [status, last_error, site_id])

    @storage_op
    def touch_site(self, site_id):
        self.conn().execute("UPDATE dse_site SET status_time = strftime('%Y-%m-%d %H:%M:%f') WHERE id = ?", [site_id])

    @storage_op
    def delete_site(self, url):
        """Remove every site row for url, with its postings, lemmas and pages."""
        with self.transaction() as conn:
            site_ids = [site_id for (site_id, ) in conn.execute('SELECT id FROM dse_site WHERE url = ?', [url])]
            for site_id in site_ids:
                conn.execute('DELETE FROM dse_index WHERE page_id IN (SELECT id FROM dse_page WHERE site_id = ?)', [site_id])
                conn.execute('DELETE FROM dse_lemma WHERE site_id = ?', [site_id])
                conn.execute('DELETE FROM dse_page WHERE site_id = ?', [site_id])
                conn.execute('DELETE FROM dse_site WHERE id = ?', [site_id])

        return len(site_ids)

    # Pages

    @storage_op
    def find_page(self, site_id, path):
        row = self.conn().execute('SELECT {} FROM dse_page WHERE site_id = ? AND path = ? ORDER BY id LIMIT 1'.format(_page_columns), [site_id, path]).fetchone()
        return Page(*row) if row else None

    @storage_op
    def get_page(self, page_id):
        row = self.conn().execute('SELECT {} FROM dse_page WHERE id = ?'.format(_page_columns), [page_id]).fetchone()
        return Page(*row) if row else None

    @storage_op
    def insert_page(self, site_id, path, code, content):
        """Raises DuplicatePageError if the site already has a page at path."""
        cur = self.conn().execute('INSERT INTO dse_page(site_id, path, code, content) VALUES (?, ?, ?, ?)', [site_id, path, code, content])
        return Page(cur.lastrowid, site_id, path, code, content)

    @storage_op
    def delete_page(self, page_id):
        """Remove a page and its postings, giving back the document frequency it contributed."""
        with self.transaction() as conn:
            site_id, = conn.execute('SELECT site_id FROM dse_page WHERE id = ?', [page_id]).fetchone() or (None, )
            if site_id is None:
                return

            conn.execute('UPDATE dse_lemma SET frequency = frequency - 1 WHERE id IN (SELECT lemma_id FROM dse_index WHERE page_id = ?)', [page_id])
            conn.execute('DELETE FROM dse_index WHERE page_id = ?', [page_id])
            conn.execute('DELETE FROM dse_lemma WHERE site_id = ? AND frequency <= 0', [site_id])
            conn.execute('DELETE FROM dse_page WHERE id = ?', [page_id])

    @storage_op
    def count_pages(self, site_id):
        count, = self.conn().execute('SELECT COUNT(*) FROM dse_page WHERE site_id = ?', [site_id]).fetchone()
        return count

    # Lemmas

    @storage_op
    def upsert_lemma(self, site_id, lemma, delta=1):
        self.conn().execute('INSERT INTO dse_lemma(site_id, lemma, frequency) VALUES (?, ?, ?) ON CONFLICT(site_id, lemma) DO UPDATE SET frequency = frequency + ?', [site_id, lemma, delta, delta])

    @storage_op
    def find_lemma(self, site_id, lemma):
        row = self.conn().execute('SELECT {} FROM dse_lemma WHERE site_id = ? AND lemma = ?'.format(_lemma_columns), [site_id, lemma]).fetchone()
        return Lemma(*row) if row else None

    @storage_op
    def find_lemmas(self, site_id, lemmas):
        conn = self.conn()
        rv = []
        for batch in batched(list(lemmas), batch_size):
            cur = conn.execute(
                'SELECT {} FROM dse_lemma WHERE site_id = ? AND lemma IN ({})'.format(_lemma_columns, ','.join(['?'] * len(batch))),
                [site_id] + list(batch)
            )
            rv.extend(Lemma(*row) for row in cur)

        return rv

    @storage_op
    def count_lemmas(self, site_id):
        count, = self.conn().execute('SELECT COUNT(*) FROM dse_lemma WHERE site_id = ?', [site_id]).fetchone()
        return count

    # Postings

    @storage_op
    def insert_postings(self, page_id, postings):
        """postings is an iterable of (lemma_id, rank_value)."""
        self.conn().executemany(
            'INSERT INTO dse_index(page_id, lemma_id, rank_value) VALUES (?, ?, ?)',
            [(page_id, lemma_id, rank) for (lemma_id, rank) in postings]
        )

    @storage_op
    def delete_postings(self, page_id):
        self.conn().execute('DELETE FROM dse_index WHERE page_id = ?', [page_id])

    @storage_op
    def count_postings(self, page_id):
        count, = self.conn().execute('SELECT COUNT(*) FROM dse_index WHERE page_id = ?', [page_id]).fetchone()
        return count

    @storage_op
    def find_pages_by_lemma(self, lemma_id):
        return {page_id for (page_id, ) in self.conn().execute('SELECT DISTINCT page_id FROM dse_index WHERE lemma_id = ?', [lemma_id])}

    @storage_op
    def find_pages_by_lemma_in(self, lemma_id, page_ids):
        conn = self.conn()
        rv = set()
        for batch in batched(sorted(page_ids), batch_size):
            cur = conn.execute(
                'SELECT DISTINCT page_id FROM dse_index WHERE lemma_id = ? AND page_id IN ({})'.format(','.join(['?'] * len(batch))),
                [lemma_id] + list(batch)
            )
            rv.update(page_id for (page_id, ) in cur)

        return rv

    @storage_op
    def sum_rank(self, page_id, lemma_ids):
        lemma_ids = list(lemma_ids)
        if not lemma_ids:
            return 0.0

        total, = self.conn().execute(
            'SELECT COALESCE(SUM(rank_value), 0) FROM dse_index WHERE page_id = ? AND lemma_id IN ({})'.format(','.join(['?'] * len(lemma_ids))),
            [page_id] + lemma_ids
        ).fetchone()
        return float(total)
