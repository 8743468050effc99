from __future__ import annotations

import logging
import math
import pathlib
from typing import Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import networkx as nx  # noqa: E402
import pandas as pd  # noqa: E402


def save_bar(series: pd.Series, path, title: str, xlabel: str, ylabel: str) -> None:
    plt.figure()
    series.plot(kind="bar")
    plt.title(title); plt.xlabel(xlabel); plt.ylabel(ylabel)
    plt.tight_layout(); plt.savefig(path); plt.close()


def plot_top_words(freq: pd.DataFrame, path, title: str, n: int = 20, label: str = "word") -> bool:
    if freq.empty:
        logging.info("Nothing to plot; skipping %s", path)
        return False
    top = freq.head(n).set_index(label)["n"]
    save_bar(top, path, title, label, "count")
    return True


def plot_word_network(
    pairs: pd.DataFrame,
    path,
    weight: str = "n",
    title: str = "",
    min_weight: Optional[float] = None,
) -> bool:
    """Draw item pairs as an undirected graph; returns False when nothing to draw."""
    edges = pairs if min_weight is None else pairs[pairs[weight] >= min_weight]
    if edges.empty:
        logging.info("No edges above threshold; skipping network %s", path)
        return False
    graph = nx.Graph()
    for item1, item2, w in zip(edges["item1"], edges["item2"], edges[weight]):
        graph.add_edge(item1, item2, weight=float(w))
    weights = [d["weight"] for _, _, d in graph.edges(data=True)]
    top = max(abs(w) for w in weights) or 1.0
    widths = [0.5 + 3.5 * abs(w) / top for w in weights]
    plt.figure(figsize=(10, 8))
    layout = nx.spring_layout(graph, seed=1234)
    nx.draw_networkx_edges(graph, layout, width=widths, edge_color="steelblue", alpha=0.6)
    nx.draw_networkx_nodes(graph, layout, node_size=40, node_color="darkorange")
    nx.draw_networkx_labels(graph, layout, font_size=8)
    plt.title(title)
    plt.axis("off")
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()
    return True


def plot_faceted_bars(
    df: pd.DataFrame,
    facet: str,
    label: str,
    value: str,
    path,
    title: str = "",
    n: int = 10,
    max_facets: int = 12,
) -> bool:
    if df.empty:
        logging.info("Nothing to plot; skipping %s", path)
        return False
    facets = list(dict.fromkeys(df[facet].tolist()))[:max_facets]
    ncols = min(3, len(facets))
    nrows = math.ceil(len(facets) / ncols)
    fig, axes = plt.subplots(nrows, ncols, figsize=(4.5 * ncols, 3.2 * nrows), squeeze=False)
    for ax, key in zip(axes.flat, facets):
        sub = df[df[facet] == key].nlargest(n, value).iloc[::-1]
        ax.barh(sub[label].astype(str), sub[value])
        ax.set_title(str(key), fontsize=9)
        ax.tick_params(axis="y", labelsize=7)
    for ax in list(axes.flat)[len(facets):]:
        ax.axis("off")
    fig.suptitle(title)
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
    return True


def plot_gamma_histogram(gamma: pd.DataFrame, path) -> None:
    plt.figure()
    plt.hist(gamma["gamma"], bins=25)
    plt.yscale("log")
    plt.title("Distribution of document-topic probabilities")
    plt.xlabel("gamma"); plt.ylabel("number of documents (log)")
    plt.tight_layout(); plt.savefig(path); plt.close()


def plot_gamma_by_topic(gamma: pd.DataFrame, path, max_topics: int = 24) -> None:
    topics = sorted(gamma["topic"].unique())[:max_topics]
    ncols = min(4, len(topics)) or 1
    nrows = max(1, math.ceil(len(topics) / ncols))
    fig, axes = plt.subplots(
        nrows, ncols, figsize=(3 * ncols, 2.4 * nrows), sharex=True, squeeze=False
    )
    for ax, topic in zip(axes.flat, topics):
        ax.hist(gamma.loc[gamma["topic"] == topic, "gamma"], bins=20)
        ax.set_yscale("log")
        ax.set_title(f"Topic {topic}", fontsize=9)
    for ax in list(axes.flat)[len(topics):]:
        ax.axis("off")
    fig.suptitle("Document-topic probabilities by topic")
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)


def render_figures(
    figures_dir: pathlib.Path,
    title_freq: pd.DataFrame,
    desc_freq: pd.DataFrame,
    keyword_freq: pd.DataFrame,
    title_pairs: pd.DataFrame,
    desc_pairs: pd.DataFrame,
    keyword_cors: pd.DataFrame,
    tfidf_by_keyword: pd.DataFrame,
    topic_results: dict,
    min_pair_count: int,
    min_correlation: float,
    top_n: int,
) -> None:
    figures_dir.mkdir(parents=True, exist_ok=True)
    plot_top_words(title_freq, figures_dir / "title_words.png", "Most common title words")
    plot_top_words(desc_freq, figures_dir / "description_words.png", "Most common description words")
    plot_top_words(
        keyword_freq, figures_dir / "keywords.png", "Most common keywords", label="keyword"
    )
    # at most 250 edges per network
    plot_word_network(
        title_pairs[title_pairs["n"] >= min_pair_count].head(250),
        figures_dir / "title_word_network.png",
        title="Word co-occurrence in titles",
    )
    plot_word_network(
        desc_pairs[desc_pairs["n"] >= min_pair_count].head(250),
        figures_dir / "description_word_network.png",
        title="Word co-occurrence in descriptions",
    )
    plot_word_network(
        keyword_cors,
        figures_dir / "keyword_correlation_network.png",
        weight="correlation",
        title="Keyword correlations",
        min_weight=min_correlation,
    )
    plot_faceted_bars(
        tfidf_by_keyword,
        "keyword",
        "word",
        "tf_idf",
        figures_dir / "tfidf_by_keyword.png",
        title="Highest tf-idf description words by keyword",
        n=top_n,
    )
    if topic_results:
        plot_faceted_bars(
            topic_results["top_terms"],
            "topic",
            "term",
            "beta",
            figures_dir / "topic_top_terms.png",
            title="Top terms per topic",
            n=top_n,
            max_facets=24,
        )
        plot_gamma_histogram(topic_results["gamma"], figures_dir / "gamma_histogram.png")
        plot_gamma_by_topic(topic_results["gamma"], figures_dir / "gamma_by_topic.png")
    logging.info("Wrote figures to %s", figures_dir)
