from __future__ import annotations

import json

import pytest

from metatext.config import MetaTextConfig


@pytest.fixture
def sample_catalog():
    return {
        "@type": "dcat:Catalog",
        "dataset": [
            {
                "_id": {"$oid": "55942a57c63a7fe59b495a77"},
                "title": "Global Ocean Surface Temperature v1.0",
                "description": "Sea surface temperature measured by ocean buoys and satellite radiometers.",
                "keyword": ["Oceans", "SEA SURFACE", "Earth Science"],
            },
            {
                "_id": {"$oid": "55942a57c63a7fe59b495a78"},
                "title": "Ocean Color Chlorophyll",
                "description": "Ocean color chlorophyll concentration from satellite radiometers over the sea.",
                "keyword": ["OCEANS", "Earth Science"],
            },
            {
                "_id": {"$oid": "55942a57c63a7fe59b495a79"},
                "title": "Solar Flare Catalog",
                "description": "Solar flare events observed by the solar telescope during solar activity maximum.",
                "keyword": ["SOLAR ACTIVITY", "Earth Science"],
            },
            {
                "_id": {"$oid": "55942a57c63a7fe59b495a7a"},
                "title": "Sunspot Observations",
                "description": "Sunspot counts and solar activity observed by the solar telescope.",
                "keyword": ["solar activity", "EARTH SCIENCE"],
            },
            {
                "_id": {"$oid": "55942a57c63a7fe59b495a7b"},
                "title": "Budget Summary",
                "description": None,
                "keyword": ["Budget", "Earth Science"],
            },
        ],
    }


@pytest.fixture
def catalog_file(tmp_path, sample_catalog):
    path = tmp_path / "data.json"
    path.write_text(json.dumps(sample_catalog))
    return path


@pytest.fixture
def config(tmp_path, catalog_file):
    cfg = MetaTextConfig(
        source=str(catalog_file),
        output_dir=str(tmp_path / "outputs"),
        n_topics=2,
        lda_max_iter=10,
        min_pair_count=1,
        min_keyword_count=1,
        make_plots=False,
    )
    cfg.ensure_run_id()
    return cfg
