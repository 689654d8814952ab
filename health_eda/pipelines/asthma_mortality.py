"""
Write-up 2: Rank tests on monthly UK deaths from lung disease (incl. asthma)

Questions:
    - Do more men than women die in the same month? (signed-rank, paired by month)
    - Are winter months deadlier than summer months? (rank-sum)
    - Do deaths differ across years / seasons? (Kruskal-Wallis + pairwise Holm)
"""
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd

from health_eda.data.lung_deaths import DEFAULT_SEASONS, add_season, deaths_long, load_lung_deaths
from health_eda.evaluation.rank_tests import (
    kruskal_test,
    pairwise_rank_sum,
    rank_sum_test,
    rank_tests_to_frame,
    signed_rank_test,
)
from health_eda.reporting.report import Report
from health_eda.visualization import plots
from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)

NAME = "asthma_mortality"


def _verdict(p_value: float, alpha: float) -> str:
    return "significant" if p_value < alpha else "not significant"


def run(
    config: Dict[str, Any],
    output_dir: Path,
    wide: Optional[pd.DataFrame] = None,
    cache_dir: Optional[Path] = None
) -> Dict[str, Any]:
    """
    Run the lung-disease mortality write-up.

    Args:
        config: Full config dict
        output_dir: Where report.md, results.json and figures/ go
        wide: Pre-built monthly frame (date, year, month, male, female, total)
        cache_dir: Download cache for the Rdatasets mirror

    Returns:
        The metrics dict written to results.json
    """
    cfg = config.get('asthma', {})
    alpha = float(cfg.get('alpha', 0.05))
    seasons = cfg.get('seasons') or DEFAULT_SEASONS
    season_a, season_b = cfg.get('compare_seasons', ['winter', 'summer'])
    adjust = cfg.get('p_adjust', 'holm')
    output_dir = Path(output_dir)
    fig_dir = output_dir / "figures"

    if season_a not in seasons or season_b not in seasons:
        raise ValueError(f"compare_seasons must name configured seasons, got {season_a}, {season_b}")

    if wide is None:
        wide = load_lung_deaths(config, cache_dir=cache_dir)
    wide = add_season(wide, seasons)
    long = deaths_long(wide)

    tests = {}
    tests['male_vs_female'] = signed_rank_test(
        wide['male'], wide['female'], labels=('male', 'female')
    )
    tests[f'{season_a}_vs_{season_b}'] = rank_sum_test(
        wide.loc[wide['season'] == season_a, 'total'],
        wide.loc[wide['season'] == season_b, 'total'],
        labels=(season_a, season_b),
    )
    tests['across_years'] = kruskal_test(wide, 'total', 'year')
    tests['across_seasons'] = kruskal_test(wide, 'total', 'season')
    pairwise = pairwise_rank_sum(wide, 'total', 'season', adjust=adjust,
                                 levels=list(seasons.keys()))

    for name, res in tests.items():
        logger.info(f"{name}: {res.test} stat={res.statistic:.2f}, p={res.p_value:.4g}")

    summary = long.groupby('sex', observed=True)['deaths'].describe()
    by_season = wide.groupby('season', observed=True)['total'].agg(['median', 'mean', 'count'])

    # Figures
    figures = {}
    figures['series'] = plots.plot_time_series_by_group(
        long, 'date', 'deaths', 'sex', fig_dir / "monthly_deaths_by_sex.png",
        title="Monthly UK deaths from bronchitis, emphysema and asthma",
        ylabel="Deaths",
    )
    figures['season_box'] = plots.plot_box_by_group(
        long, 'deaths', 'season', fig_dir / "deaths_by_season.png", hue='sex',
        title="Deaths by season and sex", order=list(seasons.keys()),
    )
    figures['month_box'] = plots.plot_box_by_group(
        wide, 'total', 'month', fig_dir / "total_deaths_by_month.png",
        title="Total deaths by calendar month",
    )

    # Write-up
    report = Report("Lung-disease deaths in the UK: rank tests")
    report.add_heading("Data")
    report.add_text(
        f"{len(wide)} months of deaths from bronchitis, emphysema and asthma "
        f"({wide['date'].min():%b %Y} to {wide['date'].max():%b %Y}), recorded separately "
        f"for men and women. Counts are skewed and strongly seasonal, so the comparisons "
        f"below use rank tests rather than t-tests."
    )
    report.add_table(summary, caption="Monthly deaths by sex")
    report.add_figure(figures['series'], "Monthly deaths by sex")

    male_female = tests['male_vs_female']
    report.add_heading("Men vs women (paired by month)")
    report.add_text(
        f"Wilcoxon signed-rank test on {male_female.n['pairs']} monthly pairs: "
        f"V = {male_female.statistic:.1f}, p = {male_female.p_value:.3g} "
        f"({_verdict(male_female.p_value, alpha)} at alpha = {alpha}). "
        f"The median monthly excess of male over female deaths is {male_female.effect:.0f}."
    )

    season_test = tests[f'{season_a}_vs_{season_b}']
    report.add_heading(f"{season_a.title()} vs {season_b.title()}")
    report.add_text(
        f"Wilcoxon rank-sum test on total deaths: W = {season_test.statistic:.1f}, "
        f"p = {season_test.p_value:.3g} ({_verdict(season_test.p_value, alpha)}). "
        f"Hodges-Lehmann shift ({season_a} - {season_b}): {season_test.effect:.0f} deaths per month."
    )
    report.add_table(by_season, caption="Total deaths by season")
    report.add_figure(figures['season_box'])

    report.add_heading("Across years and seasons")
    report.add_table(rank_tests_to_frame(tests), caption="All tests")
    report.add_table(pairwise, caption=f"Pairwise rank-sum tests between seasons ({adjust}-adjusted)")
    report.add_text(
        f"Kruskal-Wallis across years: p = {tests['across_years'].p_value:.3g}; "
        f"across seasons: p = {tests['across_seasons'].p_value:.3g}. "
        f"{int((pairwise['p_adjusted'] < alpha).sum())} of {len(pairwise)} season pairs differ "
        f"after adjustment."
    )
    report.add_figure(figures['month_box'])

    report.add_metrics('n_months', len(wide))
    report.add_metrics('alpha', alpha)
    report.add_metrics('tests', {name: res.to_dict() for name, res in tests.items()})
    report.add_metrics('pairwise_seasons', pairwise)
    report.add_metrics('summary_by_sex', summary.reset_index())
    report.write(output_dir)

    return report.metrics
