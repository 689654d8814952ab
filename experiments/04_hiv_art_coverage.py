#!/usr/bin/env python3
"""
Write-up 4: Antiretroviral therapy coverage by WHO region (WHO GHO API)

Output: results/hiv_art_coverage/{report.md, results.json, figures/}
"""
import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from health_eda.config import get_cache_dir, get_project_root, get_results_dir, load_config
from health_eda.common.logging_utils import configure_from_config
from health_eda.data.who_gho import load_snapshot, snapshot_path
from health_eda.pipelines import hiv_art_coverage


def main():
    parser = argparse.ArgumentParser(description="WHO GHO: ART coverage by region")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config_default.yaml",
        help="Path to config file"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory (default: <results_dir>/hiv_art_coverage)"
    )
    parser.add_argument("--baseline-year", type=int, default=None, help="Override hiv_art.baseline_year")
    parser.add_argument("--latest-year", type=int, default=None, help="Override hiv_art.latest_year")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Use the cached parquet snapshot (see scripts/fetch_datasets.py) instead of the API"
    )
    args = parser.parse_args()

    root = get_project_root()
    cfg = load_config(str(root / args.config))
    configure_from_config(cfg)
    if args.baseline_year:
        cfg['hiv_art']['baseline_year'] = args.baseline_year
    if args.latest_year:
        cfg['hiv_art']['latest_year'] = args.latest_year

    output_dir = Path(args.output_dir) if args.output_dir else get_results_dir(cfg, hiv_art_coverage.NAME)

    print("=" * 60)
    print("WHO GHO - ART COVERAGE BY REGION")
    print("=" * 60)

    coverage = load_snapshot(snapshot_path(cfg, get_cache_dir(cfg))) if args.offline else None
    metrics = hiv_art_coverage.run(cfg, output_dir, coverage=coverage)

    years = metrics['years']
    print(f"\n{metrics['n_countries']} countries, {years['baseline']}-{years['latest']}")
    for name, res in metrics['tests'].items():
        print(f"  {name:<22} p={res['p_value']:.4g}  {res['effect_label']}={res['effect']:.2f}")

    print(f"\n✓ Report written to {output_dir / 'report.md'}")


if __name__ == "__main__":
    main()
