#!/usr/bin/env python3
"""Download every dataset the write-ups use into the local cache.

Warms `data.cache_dir` so the experiments can run offline afterwards:
- Rdatasets CSVs (AER::Medicaid1986, datasets::mdeaths, datasets::fdeaths)
- NHANES DEMO + PBCD XPT files for the configured cycle
- a parquet snapshot of the WHO GHO ART coverage indicator

Usage:
  python scripts/fetch_datasets.py
  python scripts/fetch_datasets.py --only nhanes --overwrite
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from health_eda.config import get_cache_dir, get_project_root, load_config
from health_eda.common.logging_utils import configure_from_config
from health_eda.data.nhanes import nhanes_table_url
from health_eda.data.sources import download_file, fetch_rdataset, session_from_config
from health_eda.data.who_gho import load_art_coverage, snapshot_path

SOURCES = ("rdatasets", "nhanes", "who_gho")


def main() -> None:
    parser = argparse.ArgumentParser(description="Warm the dataset download cache")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config_default.yaml",
        help="Path to config file",
    )
    parser.add_argument(
        "--only",
        type=str,
        choices=SOURCES,
        default=None,
        help="Fetch a single source",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Re-download NHANES files and the GHO snapshot even if cached",
    )
    args = parser.parse_args()

    cfg = load_config(str(get_project_root() / args.config))
    configure_from_config(cfg)
    cache_dir = get_cache_dir(cfg)
    sources = [args.only] if args.only else list(SOURCES)
    session = session_from_config(cfg)
    timeout = cfg.get("http", {}).get("timeout", 60)

    print(f"Cache: {cache_dir}")

    if "rdatasets" in sources:
        for key, coords in cfg["data"]["rdatasets"].items():
            df = fetch_rdataset(coords["item"], coords["package"], cache_dir=cache_dir)
            print(f"  {key:<14} {coords['package']}::{coords['item']}: {len(df)} rows")

    if "nhanes" in sources:
        nh_cfg = cfg["data"]["nhanes"]
        for table in (nh_cfg["demographics_table"], nh_cfg["metals_table"]):
            url = nhanes_table_url(nh_cfg["base_url"], nh_cfg["cycle"], table)
            target = cache_dir / "nhanes" / url.rsplit("/", 1)[-1]
            download_file(url, target, session=session, timeout=timeout, overwrite=args.overwrite)
            print(f"  NHANES {nh_cfg['cycle']} {table}: {target.stat().st_size / 1e6:.1f} MB")

    if "who_gho" in sources:
        target = snapshot_path(cfg, cache_dir)
        if target.exists() and not args.overwrite:
            print(f"  GHO snapshot exists: {target.name}")
        else:
            coverage = load_art_coverage(cfg)
            target.parent.mkdir(parents=True, exist_ok=True)
            coverage.to_parquet(target, index=False)
            print(f"  GHO {target.stem}: {len(coverage)} rows -> {target.name}")

    print("Done.")


if __name__ == "__main__":
    main()
