#!/usr/bin/env python3
"""
Write-up 3: Blood lead, cadmium and mercury in US adults (NHANES)

Survey-weighted geometric means and svyglm regressions using the NHANES
design (WTMEC2YR weights, SDMVSTRA strata, SDMVPSU PSUs).

Output: results/heavy_metals/{report.md, results.json, figures/}

Usage:
    python experiments/03_heavy_metals.py --cycle 2015-2016 --lonely-psu adjust
"""
import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from health_eda.config import get_cache_dir, get_project_root, get_results_dir, load_config
from health_eda.common.logging_utils import configure_from_config
from health_eda.models.survey import LONELY_PSU_POLICIES
from health_eda.pipelines import heavy_metals


def main():
    parser = argparse.ArgumentParser(description="NHANES blood heavy metals: survey-weighted analysis")
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
        help="Output directory (default: <results_dir>/heavy_metals)"
    )
    parser.add_argument(
        "--cycle",
        type=str,
        default=None,
        help='Override data.nhanes.cycle (e.g. "2015-2016")'
    )
    parser.add_argument(
        "--lonely-psu",
        type=str,
        default=None,
        choices=list(LONELY_PSU_POLICIES),
        help="Override heavy_metals.lonely_psu"
    )
    args = parser.parse_args()

    root = get_project_root()
    cfg = load_config(str(root / args.config))
    configure_from_config(cfg)
    if args.cycle:
        cfg['data']['nhanes']['cycle'] = args.cycle
    if args.lonely_psu:
        cfg['heavy_metals']['lonely_psu'] = args.lonely_psu

    output_dir = Path(args.output_dir) if args.output_dir else get_results_dir(cfg, heavy_metals.NAME)

    print("=" * 60)
    print(f"NHANES {cfg['data']['nhanes']['cycle']} - BLOOD HEAVY METALS")
    print("=" * 60)

    metrics = heavy_metals.run(cfg, output_dir, cache_dir=get_cache_dir(cfg))

    design = metrics['design']
    print(f"\nDesign: {design['n_psu']} PSUs, {design['n_strata']} strata, "
          f"df={design['degrees_of_freedom']}, {design['n_domain']} adults in domain")
    print("\nGeometric means (95% CI):")
    for metal, gm in metrics['overall_geometric_means'].items():
        print(f"  {metal:<10} {gm['geometric_mean']:.3f} ({gm['ci_low']:.3f}-{gm['ci_high']:.3f})")

    print(f"\n✓ Report written to {output_dir / 'report.md'}")


if __name__ == "__main__":
    main()
