#!/usr/bin/env python3
"""
Write-up 1: Medicaid doctor visits - trees, bagging, random forest, XGBoost, BART

Fits every model enabled under `medicaid.models` on a 50/50 split of
AER::Medicaid1986 and compares test MSE.

Output: results/medicaid_visits/{report.md, results.json, figures/}

Usage:
    python experiments/01_medicaid_visits.py
    python experiments/01_medicaid_visits.py --skip-bart --feature-set core
"""
import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from health_eda.config import get_cache_dir, get_project_root, get_results_dir, load_config
from health_eda.common.logging_utils import configure_from_config
from health_eda.evaluation.metrics import compare_models, print_metrics
from health_eda.pipelines import medicaid_visits


def main():
    parser = argparse.ArgumentParser(description="Medicaid doctor visits: tree-based models")
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
        help="Output directory (default: <results_dir>/medicaid_visits)"
    )
    parser.add_argument(
        "--feature-set",
        type=str,
        default=None,
        choices=["full", "core"],
        help="Override medicaid.feature_set"
    )
    parser.add_argument(
        "--skip-bart",
        action="store_true",
        help="Disable BART (the slowest model)"
    )
    args = parser.parse_args()

    root = get_project_root()
    cfg = load_config(str(root / args.config))
    configure_from_config(cfg)

    if args.feature_set:
        cfg['medicaid']['feature_set'] = args.feature_set
    if args.skip_bart:
        cfg['medicaid']['models'].setdefault('bart', {})['enabled'] = False

    output_dir = Path(args.output_dir) if args.output_dir else get_results_dir(cfg, medicaid_visits.NAME)

    print("=" * 60)
    print("MEDICAID DOCTOR VISITS - TREE-BASED MODELS")
    print("=" * 60)

    metrics = medicaid_visits.run(cfg, output_dir, cache_dir=get_cache_dir(cfg))

    print(f"\n{'=' * 60}")
    print("TEST SET RESULTS")
    print("=" * 60)
    for name, model_metrics in metrics['models'].items():
        print_metrics(model_metrics, title=name)
    print(f"\nNull model (train mean) MSE: {metrics['null_model_mse']:.3f}")
    print("\nRanking by test MSE:")
    print(compare_models(metrics['models'])[['mse', 'r2']].to_string())

    print(f"\n✓ Report written to {output_dir / 'report.md'}")


if __name__ == "__main__":
    main()
