"""Turn text into lemmas, the tokens the index is keyed on.

Russian words go through pymorphy3 and English words through a closed-class
table plus nltk's Snowball stemmer. Words shorter than the minimum length,
mixed-script words, and function words (prepositions, conjunctions,
particles, interjections, articles) produce no lemma.

English index keys are Snowball stems rather than dictionary forms, so
"example" is stored as "exampl". Queries go through the same stemmer.
"""
import functools
import re
from collections import Counter
import pymorphy3
from nltk.stem.snowball import SnowballStemmer

RUSSIAN_CLOSED_CLASSES = frozenset(['PREP', 'CONJ', 'PRCL', 'INTJ'])
ENGLISH_CLOSED_CLASSES = frozenset(['PREP', 'CONJ', 'PART', 'ARTICLE', 'INT'])

_non_letters_re = re.compile('[^а-яёa-z\\s]')
_cyrillic_re = re.compile('[а-яё]')
_latin_re = re.compile('[a-z]')

def _tagged(tag, words):
    return {word: tag for word in words.split()}

# English function words of three letters or more; shorter ones never reach the analyzer.
ENGLISH_FUNCTION_WORDS = {}
ENGLISH_FUNCTION_WORDS.update(_tagged('ARTICLE', 'the'))
ENGLISH_FUNCTION_WORDS.update(_tagged('PREP', '''
    aboard about above across after against along alongside amid amidst among amongst
    around atop before behind below beneath beside besides between beyond but despite
    down during except for from inside into near nearby off onto opposite out
    outside over past per since than through throughout till toward towards under
    underneath unlike until upon versus via with within without
'''))
ENGLISH_FUNCTION_WORDS.update(_tagged('CONJ', '''
    and nor yet because although though while whereas unless whether whenever
    wherever once lest either neither both
'''))
ENGLISH_FUNCTION_WORDS.update(_tagged('PART', 'not'))
ENGLISH_FUNCTION_WORDS.update(_tagged('INT', '''
    oh ahh aha alas hey hmm hooray ouch wow yay oops ugh hello bye
'''))

class RussianMorphology:
    def __init__(self):
        self.analyzer = pymorphy3.MorphAnalyzer()

    def analyze(self, word):
        """List of (normal form, part of speech) readings, most likely first."""
        return [(parse.normal_form, str(parse.tag.POS or '')) for parse in self.analyzer.parse(word)]

class EnglishMorphology:
    def __init__(self):
        self.stemmer = SnowballStemmer('english')

    def analyze(self, word):
        tag = ENGLISH_FUNCTION_WORDS.get(word)
        if tag:
            return [(word, tag)]

        return [(self.stemmer.stem(word), 'WORD')]

class Lemmatizer:
    def __init__(self, min_word_length=3, russian=None, english=None, cache_size=100000):
        self.min_word_length = min_word_length
        self.russian = russian or RussianMorphology()
        self.english = english or EnglishMorphology()
        self.lemma = functools.lru_cache(maxsize=cache_size)(self._lemma)

    def words(self, text):
        return _non_letters_re.sub(' ', (text or '').lower()).split()

    def _lemma(self, word):
        """The lemma for a single lower-case word, or None if it should not be indexed."""
        if len(word) < self.min_word_length:
            return None

        has_cyrillic = _cyrillic_re.search(word) is not None
        has_latin = _latin_re.search(word) is not None

        if has_cyrillic and not has_latin:
            morphology, closed_classes = self.russian, RUSSIAN_CLOSED_CLASSES
        elif has_latin and not has_cyrillic:
            morphology, closed_classes = self.english, ENGLISH_CLOSED_CLASSES
        else:
            return None

        try:
            readings = morphology.analyze(word)
        except Exception:
            # A word the analyzer chokes on is dropped; the rest of the text still counts.
            return None

        if not readings:
            return None

        normal_form, tag = readings[0]
        if tag.upper() in closed_classes:
            return None

        return normal_form or None

    def collect(self, text):
        """Map each lemma in text to the number of times it occurs."""
        rv = Counter()
        for word in self.words(text):
            lemma = self.lemma(word)
            if lemma:
                rv[lemma] += 1

        return dict(rv)

    def extract_query_lemmas(self, text):
        rv = set()
        for word in self.words(text):
            lemma = self.lemma(word)
            if lemma:
                rv.add(lemma)

        return rv
