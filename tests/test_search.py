import pytest
from conftest import html_page
from datasette_search_engine.indexer import IndexingEngine
from datasette_search_engine.schema import INDEXING, INDEXED
from datasette_search_engine.search import SearchEngine

@pytest.fixture
def engine(storage, lemmatizer):
    return SearchEngine(storage, lemmatizer)

@pytest.fixture
def five_pages(storage, lemma):
    """Pages /a../e with postings alpha: a=1 b=2 c=1, beta: b=3 c=1 d=1 and gamma on every page."""
    site = storage.create_site('https://example.com/', 'Example', INDEXED)
    pages = {}
    for name in 'abcde':
        pages[name] = storage.insert_page(site.id, '/' + name, 200, html_page(name.upper(), 'Page {} of the test site'.format(name)))

    postings = {
        'alpha': {'a': 1, 'b': 2, 'c': 1},
        'beta': {'b': 3, 'c': 1, 'd': 1},
        'gamma': {name: 1 for name in 'abcde'},
    }
    for word, ranks in postings.items():
        text = lemma(word)
        for name, rank in ranks.items():
            storage.upsert_lemma(site.id, text)
            row = storage.find_lemma(site.id, text)
            storage.insert_postings(pages[name].id, [(row.id, rank)])

    return site, pages

def test_pages_with_all_lemmas(storage, engine, five_pages, lemma):
    site, pages = five_pages
    lemmas = [storage.find_lemma(site.id, lemma('alpha')), storage.find_lemma(site.id, lemma('beta'))]

    assert engine.pages_with_all_lemmas(lemmas) == {pages['b'].id, pages['c'].id}
    assert engine.pages_with_all_lemmas([]) == set()

def test_search_ranks_and_normalizes(engine, five_pages):
    rv = engine.search('alpha beta')

    assert rv.result
    assert rv.count == 2
    assert [item.uri for item in rv.data] == ['/b', '/c']
    assert [item.relevance for item in rv.data] == [pytest.approx(1.0), pytest.approx(0.4)]

    item = rv.data[0]
    assert item.site == 'https://example.com/'
    assert item.site_name == 'Example'
    assert item.title == 'B'

def test_search_is_order_independent(engine, five_pages):
    assert engine.search('alpha beta') == engine.search('beta alpha')

def test_search_pagination(engine, five_pages):
    rv = engine.search('alpha beta', limit=1)
    assert rv.count == 2
    assert [item.uri for item in rv.data] == ['/b']

    rv = engine.search('alpha beta', offset=1, limit=1)
    assert rv.count == 2
    assert [item.uri for item in rv.data] == ['/c']

    rv = engine.search('alpha beta', offset=2)
    assert rv.result
    assert rv.count == 2
    assert rv.data == []

def test_common_lemmas_are_ignored(engine, five_pages):
    assert engine.search('gamma').count == 0
    assert [item.uri for item in engine.search('alpha gamma').data] == [item.uri for item in engine.search('alpha').data]

def test_unknown_words(engine, five_pages):
    rv = engine.search('zeppelin')
    assert rv.result
    assert rv.count == 0

def test_function_words_only(engine, five_pages):
    rv = engine.search('with the')
    assert rv.result
    assert rv.count == 0

def test_empty_query(engine):
    assert engine.search('').to_dict() == {'result': False, 'error': 'Empty search query'}
    assert not engine.search('   ').result

def test_unknown_site(engine, five_pages):
    rv = engine.search('alpha', site='https://nowhere.example/')
    assert not rv.result
    assert 'https://nowhere.example/' in rv.error

def test_site_filter(storage, engine, five_pages, lemma):
    other = storage.create_site('https://other.example/', 'Other', INDEXED)
    page = storage.insert_page(other.id, '/', 200, html_page('Other', 'alpha'))
    for name in ('/x', '/y', '/z'):
        storage.insert_page(other.id, name, 200, '')
    storage.upsert_lemma(other.id, lemma('alpha'))
    storage.insert_postings(page.id, [(storage.find_lemma(other.id, lemma('alpha')).id, 1)])

    assert {item.site for item in engine.search('alpha').data} == {'https://example.com/', 'https://other.example/'}
    assert {item.site for item in engine.search('alpha', site='https://other.example/').data} == {'https://other.example/'}

def test_sites_still_indexing_are_not_searched(storage, engine, five_pages):
    site, _ = five_pages
    storage.update_site_status(site.id, INDEXING)

    assert engine.search('alpha').count == 0

def test_no_sites(engine):
    rv = engine.search('alpha')
    assert rv.to_dict() == {'result': True, 'count': 0, 'data': []}

def test_indexed_pages_rank_by_occurrences(storage, lemmatizer):
    site = storage.create_site('https://example.com/', 'Example')
    indexer = IndexingEngine(storage, lemmatizer)
    for path, title, body in [
        ('/first', 'First', 'A test, another test and an example.'),
        ('/second', 'Second', 'Only one test here.'),
        ('/third', 'Third', 'Nothing relevant here.'),
        ('/fourth', '', 'Something else entirely.'),
    ]:
        html = html_page(title, body)
        indexer.index_page_content(storage.insert_page(site.id, path, 200, html), html)
    storage.update_site_status(site.id, INDEXED)

    rv = SearchEngine(storage, lemmatizer).search('Test')

    assert [(item.uri, item.title) for item in rv.data] == [('/first', 'First'), ('/second', 'Second')]
    assert [item.relevance for item in rv.data] == [pytest.approx(1.0), pytest.approx(0.5)]
    assert '<b>test</b>' in rv.data[1].snippet

def test_untitled_page(storage, engine, lemma):
    site = storage.create_site('https://example.com/', 'Example', INDEXED)
    page = storage.insert_page(site.id, '/', 200, '<html><body>alpha</body></html>')
    for path in ('/x', '/y'):
        storage.insert_page(site.id, path, 200, '')
    storage.upsert_lemma(site.id, lemma('alpha'))
    storage.insert_postings(page.id, [(storage.find_lemma(site.id, lemma('alpha')).id, 1)])

    assert engine.search('alpha').data[0].title == 'Untitled'

def test_snippet_picks_matching_sentences(engine, lemmatizer):
    text = 'Short one. This sentence talks about the zebra we saw yesterday. Another sentence with nothing of interest inside'
    rv = engine.snippet(text, lemmatizer.extract_query_lemmas('zebras'))

    assert rv == 'This sentence talks about the <b>zebra</b> we saw yesterday.'

def test_snippet_prefers_more_matches(engine, lemmatizer):
    text = 'The zebra walked across the plain. The zebra and the giraffe drank together at the river'
    rv = engine.snippet(text, lemmatizer.extract_query_lemmas('zebra giraffe'))

    assert rv.startswith('The <b>zebra</b> and the <b>giraffe</b> drank')

def test_snippet_fallback(engine, lemmatizer):
    text = 'word ' * 100

    assert engine.snippet(text, lemmatizer.extract_query_lemmas('zebra')) == text[:200] + '...'
    assert engine.snippet('', {'zebra'}) == ''

def test_pages_purged_during_search_are_skipped(storage, engine, five_pages):
    sum_rank = storage.sum_rank

    def sum_rank_then_purge(page_id, lemma_ids):
        rv = sum_rank(page_id, lemma_ids)
        storage.delete_site('https://example.com/')
        return rv

    storage.sum_rank = sum_rank_then_purge

    rv = engine.search('alpha beta')

    assert rv.result
    assert rv.data == []

def test_snippet_stops_after_three_sentences(engine, lemmatizer):
    text = '. '.join('Sentence number {} mentions a zebra'.format(i) for i in range(6))
    rv = engine.snippet(text, lemmatizer.extract_query_lemmas('zebra'))

    assert rv.count('<b>zebra</b>') == 3
    assert len(rv) <= 300

def test_snippet_stops_once_long_enough(engine, lemmatizer):
    sentence = 'A zebra ' + 'grazes quietly on the long grass ' * 6
    text = '. '.join([sentence.strip()] * 3)
    rv = engine.snippet(text, lemmatizer.extract_query_lemmas('zebra'))

    assert rv.count('<b>zebra</b>') == 2
