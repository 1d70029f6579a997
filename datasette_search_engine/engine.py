from .config import Settings, enabled_databases, get_settings, get_sites, _plugin_name
from .crawler import Crawler
from .errors import StorageError
from .indexer import IndexingEngine
from .lemmatizer import Lemmatizer
from .search import SearchEngine
from .statistics import get_statistics
from .storage import Storage

engines = {}

class Engine:
    """Everything needed to crawl, index and search on top of one database."""

    def __init__(self, path, sites, settings=None):
        self.settings = settings or Settings()
        self.storage = Storage(path)
        self.lemmatizer = Lemmatizer(min_word_length=self.settings.min_word_length)
        self.indexer = IndexingEngine(self.storage, self.lemmatizer, max_retries=self.settings.max_retries)
        self.crawler = Crawler(self.storage, self.indexer, sites, self.settings)
        self.searcher = SearchEngine(self.storage, self.lemmatizer, max_frequency_ratio=self.settings.max_frequency_ratio)

    def start_indexing(self):
        return self.crawler.start_indexing()

    def stop_indexing(self):
        return self.crawler.stop_indexing()

    def index_page(self, url):
        return self.crawler.index_page(url)

    def search(self, query, site=None, offset=0, limit=20):
        return self.searcher.search(query, site, offset, limit)

    def statistics(self):
        try:
            return get_statistics(self.storage, self.crawler.indexing.is_set())
        except StorageError as e:
            return {'result': False, 'error': 'Unable to read statistics: {}'.format(e)}

def start_engines(datasette):
    for db_name in enabled_databases(datasette):
        db = datasette.databases[db_name]
        if db.is_memory or not db.is_mutable:
            print('datasette-search-engine: database {} is not a mutable file, skipping'.format(db_name))
            continue

        config = datasette.plugin_config(_plugin_name, db_name)
        engines[db_name] = Engine(db.path, get_sites(config), get_settings(config))

def get_engine(db_name):
    return engines.get(db_name)
