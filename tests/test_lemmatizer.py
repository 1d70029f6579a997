import pytest
from datasette_search_engine.lemmatizer import Lemmatizer

RUSSIAN = 'Повторное появление леопарда в Осетии позволяет предположить, что леопард постоянно обитает в некоторых районах Северного Кавказа.'

def test_russian_counts(lemmatizer):
    rv = lemmatizer.collect(RUSSIAN)

    assert rv['леопард'] == 2
    assert rv['осетия'] == 1
    assert rv['кавказ'] == 1

def test_russian_function_words_dropped(lemmatizer):
    rv = lemmatizer.collect('Для кошки или собаки, но не для рыбы')

    assert 'для' not in rv
    assert 'или' not in rv
    assert 'кошка' in rv

def test_english_function_words_dropped(lemmatizer):
    rv = lemmatizer.collect('The cat sat with the dogs')

    assert 'the' not in rv
    assert 'with' not in rv
    assert rv['cat'] == 1
    assert rv['dog'] == 1

def test_short_words_dropped(lemmatizer):
    assert lemmatizer.collect('ox ab кот') == {'кот': 1}

def test_min_word_length_configurable():
    lemmatizer = Lemmatizer(min_word_length=5)
    assert 'кот' not in lemmatizer.collect('кот собака')

def test_mixed_script_words_dropped(lemmatizer):
    # The first letter is a Latin 'c'.
    assert lemmatizer.collect('cлово') == {}

def test_punctuation_and_digits_split_words(lemmatizer):
    rv = lemmatizer.extract_query_lemmas('search-engine 2024 search_engine!')

    assert rv == lemmatizer.extract_query_lemmas('search engine')

def test_empty_text(lemmatizer):
    assert lemmatizer.collect('') == {}
    assert lemmatizer.collect(None) == {}
    assert lemmatizer.extract_query_lemmas('   ') == set()

def test_query_lemmas_ignore_word_order(lemmatizer):
    words = 'леопард обитает в некоторых районах'
    reversed_words = ' '.join(reversed(words.split()))

    assert lemmatizer.extract_query_lemmas(words) == lemmatizer.extract_query_lemmas(reversed_words)

@pytest.mark.parametrize('text', [RUSSIAN, 'The quick brown foxes jumped over lazy dogs'])
def test_collect_agrees_with_query_lemmas(lemmatizer, text):
    assert set(lemmatizer.collect(text)) == lemmatizer.extract_query_lemmas(text)

def test_broken_word_is_skipped():
    class Broken:
        def analyze(self, word):
            if word == 'boom':
                raise ValueError(word)
            return [(word, 'WORD')]

    lemmatizer = Lemmatizer(english=Broken())

    assert lemmatizer.collect('boom town') == {'town': 1}

def test_collect_ignores_word_order(lemmatizer):
    words = RUSSIAN.split() + 'the zebra and the giraffe saw another zebra'.split()
    reversed_words = list(reversed(words))

    assert lemmatizer.collect(' '.join(words)) == lemmatizer.collect(' '.join(reversed_words))

def test_english_keys_are_stems(lemmatizer):
    assert lemmatizer.collect('example examples') == {'exampl': 2}
