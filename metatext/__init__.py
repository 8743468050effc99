"""
Text mining for JSON metadata catalogs.

The modules inside this package fetch a catalog, tokenize dataset titles and
descriptions, and run word co-occurrence, tf-idf and LDA topic modeling over
them. The public entrypoint is ``metatext.run.main``.
"""

__all__ = [
    "config",
    "ingest",
    "stopwords",
    "tokens",
    "cooccur",
    "tfidf",
    "topics",
    "viz",
    "integrity",
    "report",
]
