from __future__ import annotations

import argparse
import json
import pathlib
import uuid
from dataclasses import dataclass, field, asdict
from typing import List, Optional

DEFAULT_SOURCE = "https://data.nasa.gov/data.json"


def _default_stop_words() -> List[str]:
    # version strings, processing levels and bare digits dominate catalog text
    return [
        "v1",
        "v2",
        "v1.0",
        "v5.2",
        "v003",
        "v005",
        "v006",
        "v7",
        "l1",
        "l2",
        "l3",
        "0",
        "1",
        "2",
        "3",
        "4",
        "5",
        "6",
        "7",
        "8",
        "9",
        "10",
        "ii",
    ]


def _default_topic_stop_words() -> List[str]:
    return [
        "data",
        "set",
        "using",
        "based",
        "product",
        "products",
        "provided",
        "available",
        "provide",
        "include",
        "includes",
        "used",
        "use",
        "new",
        "high",
        "level",
        "file",
        "files",
        "version",
        "time",
    ]


@dataclass
class MetaTextConfig:
    """Central configuration for a catalog text-mining run."""

    source: str = DEFAULT_SOURCE
    output_dir: str = "outputs"
    request_timeout: float = 60.0
    random_seed: int = 1234
    n_topics: int = 24
    lda_max_iter: int = 20
    topic_grid: List[int] = field(default_factory=list)
    top_n: int = 10
    min_pair_count: int = 2
    min_keyword_count: int = 10
    min_correlation: float = 0.6
    gamma_threshold: float = 0.9
    uppercase_keywords: bool = True
    tfidf_keywords: List[str] = field(default_factory=list)
    make_plots: bool = True
    stop_words: List[str] = field(default_factory=_default_stop_words)
    topic_stop_words: List[str] = field(default_factory=_default_topic_stop_words)
    run_id: Optional[str] = None

    @classmethod
    def from_args(cls, args: Optional[List[str]] = None) -> "MetaTextConfig":
        parser = argparse.ArgumentParser(
            description="Tokenize a JSON metadata catalog and run tf-idf and LDA over it."
        )
        parser.add_argument(
            "source",
            nargs="?",
            default=DEFAULT_SOURCE,
            help=f"Catalog URL or local JSON path (default: {DEFAULT_SOURCE})",
        )
        parser.add_argument(
            "--output-dir",
            default="outputs",
            help="Directory for run artifacts (default: outputs)",
        )
        parser.add_argument(
            "--request-timeout",
            type=float,
            default=60.0,
            help="Seconds to wait for the catalog download",
        )
        parser.add_argument(
            "--n-topics", type=int, default=24, help="Number of LDA topics to fit"
        )
        parser.add_argument(
            "--lda-max-iter", type=int, default=20, help="Maximum LDA iterations"
        )
        parser.add_argument(
            "--topic-grid",
            type=int,
            nargs="*",
            default=[],
            help="Candidate topic counts to compare by perplexity",
        )
        parser.add_argument(
            "--random-seed", type=int, default=1234, help="Random seed for reproducibility"
        )
        parser.add_argument(
            "--top-n", type=int, default=10, help="Terms shown per keyword or topic"
        )
        parser.add_argument(
            "--min-pair-count",
            type=int,
            default=2,
            help="Minimum shared documents for a co-occurrence edge",
        )
        parser.add_argument(
            "--min-keyword-count",
            type=int,
            default=10,
            help="Minimum documents a keyword needs before correlations are computed",
        )
        parser.add_argument(
            "--min-correlation",
            type=float,
            default=0.6,
            help="Minimum phi coefficient for keyword network edges",
        )
        parser.add_argument(
            "--gamma-threshold",
            type=float,
            default=0.9,
            help="Minimum document-topic probability when matching keywords to topics",
        )
        parser.add_argument(
            "--keep-keyword-case",
            dest="uppercase_keywords",
            action="store_false",
            help="Do not upper-case keywords before counting",
        )
        parser.add_argument(
            "--tfidf-keyword",
            dest="tfidf_keywords",
            action="append",
            default=[],
            help="Keyword to chart tf-idf words for (repeatable; default: most frequent)",
        )
        parser.add_argument(
            "--no-plots",
            dest="make_plots",
            action="store_false",
            help="Skip figure generation",
        )
        parsed = parser.parse_args(args=args)
        return cls(
            source=parsed.source,
            output_dir=parsed.output_dir,
            request_timeout=parsed.request_timeout,
            n_topics=parsed.n_topics,
            lda_max_iter=parsed.lda_max_iter,
            topic_grid=list(parsed.topic_grid),
            random_seed=parsed.random_seed,
            top_n=parsed.top_n,
            min_pair_count=parsed.min_pair_count,
            min_keyword_count=parsed.min_keyword_count,
            min_correlation=parsed.min_correlation,
            gamma_threshold=parsed.gamma_threshold,
            uppercase_keywords=parsed.uppercase_keywords,
            tfidf_keywords=list(parsed.tfidf_keywords),
            make_plots=parsed.make_plots,
        )

    def ensure_run_id(self) -> str:
        if not self.run_id:
            self.run_id = str(uuid.uuid4())
        return self.run_id

    def output_path(self, *parts: str) -> pathlib.Path:
        path = pathlib.Path(self.output_dir).joinpath(*parts)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2, sort_keys=True)


def save_config_snapshot(config: MetaTextConfig) -> None:
    path = config.output_path("metatext_config_snapshot.json")
    path.write_text(config.to_json())
