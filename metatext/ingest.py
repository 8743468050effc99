from __future__ import annotations

import json
import logging
import pathlib
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
import requests

from .config import MetaTextConfig

CANONICAL_FIELDS = {
    "id": ["_id", "identifier", "id"],
    "title": ["title", "name"],
    "description": ["description", "notes"],
    "keywords": ["keyword", "keywords", "tags"],
}


def _choose_field(record: Dict[str, Any], candidates: Iterable[str]) -> Optional[str]:
    for name in candidates:
        if name in record and record[name] is not None:
            return name
    return None


def fetch_catalog(url: str, timeout: float = 60.0) -> Any:
    """Download the catalog with a single GET; any failure aborts."""
    logging.info("Fetching catalog from %s", url)
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as exc:
        raise RuntimeError(f"Failed to fetch catalog {url}: {exc}") from exc
    try:
        return response.json()
    except ValueError as exc:
        raise RuntimeError(f"Catalog at {url} is not valid JSON") from exc


def load_catalog(source: str, timeout: float = 60.0) -> Any:
    if source.startswith(("http://", "https://")):
        return fetch_catalog(source, timeout=timeout)
    path = pathlib.Path(source)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise RuntimeError(f"Catalog file {path} is not valid JSON") from exc


def parse_identifier(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, dict):
        # mongo exports wrap ids as {"$oid": "..."}
        for k in ["$oid", "value", "id"]:
            if k in value and value[k] is not None:
                return str(value[k])
        return None
    text = str(value).strip()
    return text or None


def parse_keywords(value) -> List[str]:
    """Normalize a keyword field into a list of non-empty strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    if isinstance(value, (list, tuple)):
        tags: List[str] = []
        for item in value:
            if isinstance(item, str) and item.strip():
                tags.append(item.strip())
            elif isinstance(item, dict):
                for k in ["name", "display_name", "title"]:
                    if item.get(k):
                        tags.append(str(item[k]).strip())
                        break
        return tags
    return []


def _as_text(value) -> str:
    if isinstance(value, str):
        return value
    return ""


def flatten_catalog(catalog: Any) -> pd.DataFrame:
    if isinstance(catalog, dict):
        if "dataset" not in catalog:
            logging.warning("Catalog has no 'dataset' list; no records to flatten.")
        records = catalog.get("dataset", [])
    elif isinstance(catalog, list):
        records = catalog
    else:
        raise RuntimeError(f"Unsupported catalog payload type {type(catalog).__name__}")
    rows = []
    seen = set()
    for position, record in enumerate(records):
        if not isinstance(record, dict):
            continue
        id_field = _choose_field(record, CANONICAL_FIELDS["id"])
        dataset_id = parse_identifier(record[id_field]) if id_field else None
        if dataset_id is None:
            dataset_id = f"dataset-{position}"
        if dataset_id in seen:
            continue
        seen.add(dataset_id)
        title_field = _choose_field(record, CANONICAL_FIELDS["title"])
        desc_field = _choose_field(record, CANONICAL_FIELDS["description"])
        kw_field = _choose_field(record, CANONICAL_FIELDS["keywords"])
        rows.append(
            {
                "id": dataset_id,
                "title": _as_text(record.get(title_field)) if title_field else "",
                "description": _as_text(record.get(desc_field)) if desc_field else "",
                "keywords": parse_keywords(record.get(kw_field)) if kw_field else [],
            }
        )
    return pd.DataFrame(rows, columns=list(CANONICAL_FIELDS.keys()))


def field_table(datasets: pd.DataFrame, field: str) -> pd.DataFrame:
    table = datasets[["id", field]].copy()
    table[field] = table[field].fillna("").astype(str)
    table = table[table[field].str.strip() != ""]
    return table.reset_index(drop=True)


def keyword_table(datasets: pd.DataFrame, uppercase: bool = True) -> pd.DataFrame:
    rows = []
    for dataset_id, keywords in zip(datasets["id"], datasets["keywords"]):
        seen = set()
        for kw in keywords if keywords is not None else []:
            kw = str(kw).strip()
            if uppercase:
                kw = kw.upper()
            if not kw or kw in seen:
                continue
            seen.add(kw)
            rows.append({"id": dataset_id, "keyword": kw})
    return pd.DataFrame(rows, columns=["id", "keyword"])


def ingest(config: MetaTextConfig) -> pd.DataFrame:
    catalog = load_catalog(config.source, timeout=config.request_timeout)
    datasets = flatten_catalog(catalog)
    logging.info("Flattened catalog into %d dataset records", len(datasets))
    path = config.output_path("metatext_datasets.parquet")
    datasets.to_parquet(path, index=False)
    logging.info("Wrote dataset records to %s", path)
    return datasets
