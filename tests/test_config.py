from __future__ import annotations

import json

from metatext.config import DEFAULT_SOURCE, MetaTextConfig, save_config_snapshot


def test_defaults_from_args():
    config = MetaTextConfig.from_args([])
    assert config.source == DEFAULT_SOURCE
    assert config.n_topics == 24
    assert config.random_seed == 1234
    assert config.make_plots is True
    assert config.uppercase_keywords is True
    assert "v1.0" in config.stop_words


def test_from_args_overrides(tmp_path):
    config = MetaTextConfig.from_args(
        [
            "catalog.json",
            "--output-dir",
            str(tmp_path),
            "--n-topics",
            "8",
            "--topic-grid",
            "4",
            "8",
            "--tfidf-keyword",
            "OCEANS",
            "--tfidf-keyword",
            "BUDGET",
            "--keep-keyword-case",
            "--no-plots",
        ]
    )
    assert config.source == "catalog.json"
    assert config.n_topics == 8
    assert config.topic_grid == [4, 8]
    assert config.tfidf_keywords == ["OCEANS", "BUDGET"]
    assert config.uppercase_keywords is False
    assert config.make_plots is False


def test_run_id_and_snapshot(tmp_path):
    config = MetaTextConfig(output_dir=str(tmp_path / "nested"))
    run_id = config.ensure_run_id()
    assert config.ensure_run_id() == run_id
    save_config_snapshot(config)
    snapshot = json.loads((tmp_path / "nested" / "metatext_config_snapshot.json").read_text())
    assert snapshot["run_id"] == run_id
