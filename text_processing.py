# text_processing.py
# Tokenizing, stemming and string similarity shared by retrieval and the classifier.

import math
import re
from collections import Counter

from nltk.stem import PorterStemmer
from rapidfuzz import fuzz, process

STOP_WORDS = {
    "a", "an", "the", "is", "are", "am", "i", "you", "he", "she", "it", "we", "they",
    "of", "for", "to", "in", "on", "and", "or", "but", "with", "at", "from",
    "this", "that", "these", "those", "about", "what", "how", "when", "why",
    "do", "does", "did", "my", "your", "his", "her", "their", "our", "have",
    "has", "had", "me", "be", "been", "was", "were", "can", "should", "i'm",
}

_stemmer = PorterStemmer()

# Edit-distance cutoff (0-100) for counting a misspelt term as a match
FUZZY_TERM_CUTOFF = 85
FUZZY_TERM_MIN_LEN = 5


def tokenize(text: str) -> list[str]:
    tokens = re.findall(r"\w+", (text or "").lower())
    return [t for t in tokens if t not in STOP_WORDS]


def lexemes(text: str) -> list[str]:
    """Stemmed, stopword-free tokens (roughly what to_tsvector('english') yields)."""
    return [_stemmer.stem(t) for t in tokenize(text)]


def trigrams(text: str) -> set[str]:
    """pg_trgm style: each word padded with two leading and one trailing blank."""
    grams = set()
    for word in re.findall(r"\w+", (text or "").lower()):
        padded = f"  {word} "
        for i in range(len(padded) - 2):
            grams.add(padded[i:i + 3])
    return grams


def trigram_similarity(a: str, b: str) -> float:
    ta, tb = trigrams(a), trigrams(b)
    if not ta or not tb:
        return 0.0
    return len(ta & tb) / len(ta | tb)


def normalize_rank(rank: float) -> float:
    """Project an unbounded ranking statistic into [0,1): rank / (rank + 1)."""
    if rank <= 0:
        return 0.0
    return rank / (rank + 1.0)


def term_frequency(term: str, counts: Counter) -> float:
    """
    Occurrences of ``term`` in a lexeme bag.

    Exact hits count fully; a close misspelling (edit ratio >= cutoff) counts
    half, so "dengu" still finds "dengue".
    """
    if term in counts:
        return float(counts[term])
    if len(term) < FUZZY_TERM_MIN_LEN or not counts:
        return 0.0
    best = process.extractOne(term, counts.keys(), scorer=fuzz.ratio, score_cutoff=FUZZY_TERM_CUTOFF)
    if best is None:
        return 0.0
    return 0.5 * counts[best[0]]


def full_text_rank(
    query_terms: list[str],
    title_counts: Counter,
    body_counts: Counter,
    title_weight: float = 1.0,
    body_weight: float = 0.4,
) -> float:
    """Weighted log-frequency rank of the query terms; 0 when nothing matches."""
    rank = 0.0
    for term in set(query_terms):
        tf = term_frequency(term, title_counts)
        weight = title_weight
        if tf == 0:
            tf = term_frequency(term, body_counts)
            weight = body_weight
        if tf >= 1:
            rank += weight * (1.0 + math.log(tf))
        elif tf > 0:
            rank += weight * tf
    return rank
