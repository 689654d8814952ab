#!/usr/bin/env python3
"""
Write-up 2: Monthly UK deaths from bronchitis, emphysema and asthma

Rank tests on datasets::mdeaths / datasets::fdeaths (1974-1979):
- Wilcoxon signed-rank: male vs female deaths, paired by month
- Wilcoxon rank-sum: winter vs summer total deaths
- Kruskal-Wallis across years and seasons, pairwise Holm-adjusted

Output: results/asthma_mortality/{report.md, results.json, figures/}
"""
import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from health_eda.config import get_cache_dir, get_project_root, get_results_dir, load_config
from health_eda.common.logging_utils import configure_from_config
from health_eda.pipelines import asthma_mortality


def main():
    parser = argparse.ArgumentParser(description="UK lung-disease deaths: rank tests")
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
        help="Output directory (default: <results_dir>/asthma_mortality)"
    )
    parser.add_argument(
        "--alpha",
        type=float,
        default=None,
        help="Override asthma.alpha"
    )
    args = parser.parse_args()

    root = get_project_root()
    cfg = load_config(str(root / args.config))
    configure_from_config(cfg)
    if args.alpha is not None:
        cfg['asthma']['alpha'] = args.alpha

    output_dir = Path(args.output_dir) if args.output_dir else get_results_dir(cfg, asthma_mortality.NAME)

    print("=" * 60)
    print("UK LUNG-DISEASE DEATHS - RANK TESTS")
    print("=" * 60)

    metrics = asthma_mortality.run(cfg, output_dir, cache_dir=get_cache_dir(cfg))

    print(f"\n{metrics['n_months']} months analysed (alpha = {metrics['alpha']})")
    for name, res in metrics['tests'].items():
        flag = "*" if res['p_value'] < metrics['alpha'] else " "
        print(f"  {flag} {name:<22} {res['test']:<22} p={res['p_value']:.4g}  "
              f"{res['effect_label']}={res['effect']:.2f}")

    print(f"\n✓ Report written to {output_dir / 'report.md'}")


if __name__ == "__main__":
    main()
