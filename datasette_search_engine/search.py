from .errors import StorageError
from .results import SearchItem, SearchResponse
from .schema import INDEXED
from .utils import html_text, html_title

UNTITLED = 'Untitled'

SNIPPET_MIN_SENTENCE = 20
SNIPPET_MAX_SENTENCES = 3
SNIPPET_MAX_LENGTH = 300
SNIPPET_FALLBACK_LENGTH = 200

class SearchEngine:
    def __init__(self, storage, lemmatizer, max_frequency_ratio=0.8):
        self.storage = storage
        self.lemmatizer = lemmatizer
        self.max_frequency_ratio = max_frequency_ratio

    def search(self, query, site=None, offset=0, limit=20):
        if not query or not query.strip():
            return SearchResponse(False, error='Empty search query')

        lemmas = self.lemmatizer.extract_query_lemmas(query)
        if not lemmas:
            return SearchResponse(True, 0, [])

        try:
            sites = self.sites_to_search(site)
            if sites is None:
                return SearchResponse(False, error='Site not found: {}'.format(site))

            relevance = {}
            for s in sites:
                if s.status != INDEXED:
                    continue
                relevance.update(self.search_site(s, lemmas))

            if not relevance:
                return SearchResponse(True, 0, [])

            max_relevance = max(relevance.values())
            ranked = sorted(
                ((page_id, value / max_relevance) for page_id, value in relevance.items()),
                key=lambda x: x[1],
                reverse=True
            )

            total = len(ranked)
            if offset >= total:
                return SearchResponse(True, total, [])

            sites_by_id = {s.id: s for s in sites}
            items = [
                self.build_item(sites_by_id, page_id, value, lemmas)
                for page_id, value in ranked[offset:min(offset + limit, total)]
            ]
            # A recrawl may purge pages between ranking and here.
            items = [item for item in items if item is not None]
            return SearchResponse(True, total, items)
        except StorageError as e:
            print('search: query={!r} failed: {}'.format(query, e))
            return SearchResponse(False, error='Search failed: {}'.format(e))

    def sites_to_search(self, site_url):
        """Sites to look in, or None if site_url names a site we don't know."""
        if not site_url:
            return self.storage.all_sites()

        site = self.storage.find_site_by_url(site_url)
        if site is None:
            return None

        return [site]

    def search_site(self, site, query_lemmas):
        """Map page id -> absolute relevance for pages of site containing every usable query lemma."""
        total_pages = self.storage.count_pages(site.id)
        if not total_pages:
            return {}

        # Lemmas on most of the site's pages don't discriminate; drop them.
        lemmas = [self.storage.find_lemma(site.id, lemma) for lemma in query_lemmas]
        lemmas = [
            lemma for lemma in lemmas
            if lemma is not None and lemma.frequency <= total_pages * self.max_frequency_ratio
        ]
        if not lemmas:
            return {}

        lemmas.sort(key=lambda lemma: (lemma.frequency, lemma.lemma))

        pages = self.pages_with_all_lemmas(lemmas)
        lemma_ids = [lemma.id for lemma in lemmas]
        return {page_id: self.storage.sum_rank(page_id, lemma_ids) for page_id in pages}

    def pages_with_all_lemmas(self, lemmas):
        """Intersect postings, rarest lemma first."""
        if not lemmas:
            return set()

        pages = self.storage.find_pages_by_lemma(lemmas[0].id)
        for lemma in lemmas[1:]:
            if not pages:
                break
            pages &= self.storage.find_pages_by_lemma_in(lemma.id, pages)

        return pages

    def build_item(self, sites_by_id, page_id, relevance, query_lemmas):
        """A result item for page_id, or None if the page or its site is gone."""
        page = self.storage.get_page(page_id)
        if page is None:
            return None

        site = sites_by_id.get(page.site_id) or self.storage.find_site(page.site_id)
        if site is None:
            return None

        return SearchItem(
            site=site.url,
            site_name=site.name,
            uri=page.path,
            title=html_title(page.content) or UNTITLED,
            snippet=self.snippet(html_text(page.content), query_lemmas),
            relevance=relevance,
        )

    def snippet(self, text, query_lemmas):
        if not text:
            return ''

        scored = []
        for sentence in text.split('. '):
            if len(sentence) < SNIPPET_MIN_SENTENCE:
                continue

            matches = len(set(self.lemmatizer.collect(sentence)) & query_lemmas)
            if matches:
                scored.append((sentence, matches))

        if not scored:
            return text[:SNIPPET_FALLBACK_LENGTH] + '...'

        scored.sort(key=lambda x: x[1], reverse=True)

        snippet = ''
        added = 0
        for sentence, _ in scored:
            if added >= SNIPPET_MAX_SENTENCES or len(snippet) > SNIPPET_MAX_LENGTH:
                break

            snippet += self.highlight(sentence, query_lemmas) + '. '
            added += 1

        return snippet.strip()

    def highlight(self, sentence, query_lemmas):
        words = []
        for word in sentence.split():
            if self.lemmatizer.extract_query_lemmas(word) & query_lemmas:
                words.append('<b>{}</b>'.format(word))
            else:
                words.append(word)

        return ' '.join(words)
