from __future__ import annotations

import logging
import sys
from typing import Dict

from .config import MetaTextConfig
from .cooccur import cooccurrence_tables
from .ingest import field_table, ingest, keyword_table
from .integrity import run_integrity
from .report import build_report
from .stopwords import load_stop_words, stop_word_report
from .tfidf import run_tfidf
from .tokens import count_tokens, keyword_frequencies, tokenize_field, word_frequencies
from .topics import run_topic_model
from .viz import render_figures


def run_pipeline(config: MetaTextConfig) -> Dict[str, object]:
    datasets = ingest(config)
    stop_words = load_stop_words(config)
    titles = field_table(datasets, "title")
    descriptions = field_table(datasets, "description")
    keywords = keyword_table(datasets, uppercase=config.uppercase_keywords)

    title_raw, title_tokens = tokenize_field(titles, "title", stop_words)
    desc_raw, desc_tokens = tokenize_field(descriptions, "description", stop_words)
    stop_word_report(title_raw, title_tokens, config, "title")
    stop_word_report(desc_raw, desc_tokens, config, "description")
    title_freq = word_frequencies(title_tokens)
    desc_freq = word_frequencies(desc_tokens)
    keyword_freq = keyword_frequencies(keywords)

    desc_counts = count_tokens(desc_tokens)
    counts_path = config.output_path("metatext_description_counts.parquet")
    desc_counts.to_parquet(counts_path, index=False)
    logging.info("Wrote %d token-count records to %s", len(desc_counts), counts_path)

    title_pairs, desc_pairs, keyword_cors = cooccurrence_tables(
        title_tokens, desc_tokens, keywords, config
    )
    tfidf, tfidf_by_keyword = run_tfidf(desc_counts, keywords, config)
    topic_results = run_topic_model(desc_tokens, keywords, config)

    run_status, metrics = run_integrity(datasets, desc_counts, tfidf, topic_results, config)
    if run_status != "VALID":
        logging.warning("Integrity checks failed; see integrity report.")
    if config.make_plots:
        render_figures(
            config.output_path("figures"),
            title_freq,
            desc_freq,
            keyword_freq,
            title_pairs,
            desc_pairs,
            keyword_cors,
            tfidf_by_keyword,
            topic_results,
            min_pair_count=config.min_pair_count,
            min_correlation=config.min_correlation,
            top_n=config.top_n,
        )
    build_report(
        datasets,
        title_freq,
        desc_freq,
        keyword_freq,
        title_pairs,
        desc_pairs,
        keyword_cors,
        tfidf_by_keyword,
        topic_results,
        run_status,
        config,
    )
    return {
        "run_status": run_status,
        "metrics": metrics,
        "datasets": datasets,
        "tfidf": tfidf,
        "topics": topic_results,
    }


def main(argv=None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    config = MetaTextConfig.from_args(argv)
    logging.info("Starting metatext run with run_id %s", config.ensure_run_id())
    run_pipeline(config)


if __name__ == "__main__":
    main(sys.argv[1:])
