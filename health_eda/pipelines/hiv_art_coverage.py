"""
Write-up 4: Antiretroviral therapy (ART) coverage by WHO region

Pipeline:
    GHO indicator HIV_0000000009 -> country x year coverage (%)
    -> regional medians over time
    -> Kruskal-Wallis across regions (latest year) + pairwise Holm
    -> signed-rank test of baseline vs latest coverage within countries
    -> fractional-logit GLM: coverage ~ year + region
"""
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf

from health_eda.data.who_gho import GHOClient, load_art_coverage
from health_eda.evaluation.rank_tests import (
    kruskal_test,
    pairwise_rank_sum,
    rank_tests_to_frame,
    signed_rank_test,
)
from health_eda.reporting.report import Report
from health_eda.visualization import plots
from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)

NAME = "hiv_art_coverage"

# GHO disaggregations that mean "both sexes / all ages"
TOTAL_DIM1 = {None, '', 'SEX_BTSX', 'BTSX'}


def clean_coverage(coverage: pd.DataFrame) -> pd.DataFrame:
    """
    Keep country-level totals with a WHO region, coverage clipped to [0, 100].

    Returns:
        DataFrame with country_code, country, region, year (int), coverage
    """
    df = coverage.copy()
    if 'dim1' in df.columns:
        df = df[df['dim1'].isna() | df['dim1'].isin(TOTAL_DIM1)]
    if 'country' not in df.columns:
        df['country'] = df['country_code']

    n_before = len(df)
    df = df.dropna(subset=['region', 'value', 'year'])
    if len(df) < n_before:
        logger.info(f"Dropped {n_before - len(df)} rows without region, year or value")

    df = df.assign(
        year=df['year'].astype(int),
        coverage=df['value'].astype(float).clip(0.0, 100.0),
    )
    df = df.drop_duplicates(subset=['country_code', 'year'], keep='first')
    return df[['country_code', 'country', 'region', 'year', 'coverage']] \
        .sort_values(['region', 'country_code', 'year']).reset_index(drop=True)


def regional_summary(df: pd.DataFrame) -> pd.DataFrame:
    """Median and interquartile range of coverage per region and year."""
    grouped = df.groupby(['region', 'year'])['coverage']
    return pd.DataFrame({
        'median': grouped.median(),
        'q25': grouped.quantile(0.25),
        'q75': grouped.quantile(0.75),
        'n_countries': grouped.size(),
    }).reset_index()


def paired_years(df: pd.DataFrame, baseline: int, latest: int) -> pd.DataFrame:
    """Countries reporting in both years, one row each with baseline/latest columns."""
    wide = df[df['year'].isin([baseline, latest])].pivot_table(
        index=['country_code', 'region'], columns='year', values='coverage'
    )
    wide = wide.reindex(columns=[baseline, latest]).dropna()
    wide.columns = ['baseline', 'latest']
    return wide.reset_index()


def fit_fractional_logit(df: pd.DataFrame) -> Tuple[pd.DataFrame, Any]:
    """
    Fractional logit (quasi-binomial GLM) of coverage share on year and region.

    Standard errors are clustered by country since countries repeat over years.

    Returns:
        (coefficient table with odds ratios, fitted statsmodels result)
    """
    data = df.assign(
        share=df['coverage'] / 100.0,
        year_c=df['year'] - df['year'].min(),
    )
    groups = pd.factorize(data['country_code'])[0]
    model = smf.glm("share ~ year_c + C(region)", data=data, family=sm.families.Binomial())
    fitted = model.fit(cov_type='cluster', cov_kwds={'groups': groups})

    ci = fitted.conf_int()
    table = pd.DataFrame({
        'estimate': fitted.params,
        'std_error': fitted.bse,
        'p_value': fitted.pvalues,
        'odds_ratio': np.exp(fitted.params),
        'ci_low': ci[0],
        'ci_high': ci[1],
        'or_ci_low': np.exp(ci[0]),
        'or_ci_high': np.exp(ci[1]),
    })
    return table, fitted


def run(
    config: Dict[str, Any],
    output_dir: Path,
    coverage: Optional[pd.DataFrame] = None,
    client: Optional[GHOClient] = None
) -> Dict[str, Any]:
    """
    Run the ART coverage write-up.

    Args:
        config: Full config dict
        output_dir: Where report.md, results.json and figures/ go
        coverage: Pre-loaded tidy indicator frame (skips the API)
        client: GHO client to use instead of the configured one

    Returns:
        The metrics dict written to results.json
    """
    cfg = config.get('hiv_art', {})
    alpha = float(cfg.get('alpha', 0.05))
    adjust = cfg.get('p_adjust', 'holm')
    output_dir = Path(output_dir)
    fig_dir = output_dir / "figures"

    if coverage is None:
        coverage = load_art_coverage(config, client=client)
    df = clean_coverage(coverage)
    if df.empty:
        raise ValueError("No country-level ART coverage values with a WHO region")

    baseline = int(cfg.get('baseline_year') or df['year'].min())
    latest = int(cfg.get('latest_year') or df['year'].max())
    if baseline >= latest:
        raise ValueError(f"baseline_year ({baseline}) must precede latest_year ({latest})")
    logger.info(f"ART coverage: {df['country_code'].nunique()} countries, "
                f"{df['region'].nunique()} regions, {baseline}-{latest}")

    summary = regional_summary(df)
    latest_df = df[df['year'] == latest]
    pairs = paired_years(df, baseline, latest)

    tests = {}
    tests['regions_latest_year'] = kruskal_test(latest_df, 'coverage', 'region')
    tests['latest_vs_baseline'] = signed_rank_test(
        pairs['latest'], pairs['baseline'], labels=(str(latest), str(baseline))
    )
    pairwise = pairwise_rank_sum(latest_df, 'coverage', 'region', adjust=adjust)
    glm_table, glm_fit = fit_fractional_logit(df)

    # Figures
    figures = {}
    figures['trends'] = plots.plot_trends_by_region(
        summary, fig_dir / "coverage_trends_by_region.png",
        title="ART coverage among people living with HIV: regional median (IQR band)",
        ylabel="Coverage (%)",
    )
    figures['latest_box'] = plots.plot_box_by_group(
        latest_df, 'coverage', 'region', fig_dir / "coverage_by_region_latest.png",
        title=f"Country ART coverage by WHO region, {latest}",
    )
    figures['odds_ratios'] = plots.plot_coefficients(
        glm_table, fig_dir / "fractional_logit_odds_ratios.png",
        title="Fractional logit: odds ratios of coverage",
        transform=np.exp, reference=1.0, xlabel="Odds ratio (95% CI)",
    )

    # Write-up
    report = Report("Antiretroviral therapy coverage by WHO region")
    report.add_heading("Data")
    report.add_text(
        f"WHO GHO estimates of ART coverage among people living with HIV for "
        f"{df['country_code'].nunique()} countries in {df['region'].nunique()} WHO regions, "
        f"{df['year'].min()}-{df['year'].max()}."
    )
    report.add_table(
        summary[summary['year'].isin([baseline, latest])].set_index(['region', 'year']),
        caption=f"Regional coverage (%), {baseline} and {latest}",
    )
    report.add_figure(figures['trends'])

    region_test = tests['regions_latest_year']
    report.add_heading(f"Regional differences in {latest}")
    report.add_text(
        f"Kruskal-Wallis across regions: H = {region_test.statistic:.2f}, "
        f"p = {region_test.p_value:.3g}, epsilon-squared = {region_test.effect:.2f}. "
        f"{int((pairwise['p_adjusted'] < alpha).sum())} of {len(pairwise)} region pairs "
        f"differ after {adjust} adjustment."
    )
    report.add_table(pairwise, caption=f"Pairwise rank-sum tests ({adjust}-adjusted)")
    report.add_figure(figures['latest_box'])

    change = tests['latest_vs_baseline']
    report.add_heading(f"Change from {baseline} to {latest}")
    report.add_text(
        f"Signed-rank test on {change.n['pairs']} countries reporting in both years: "
        f"p = {change.p_value:.3g}. Median within-country gain: {change.effect:.1f} percentage points."
    )
    report.add_table(rank_tests_to_frame(tests), caption="Rank tests")

    year_or = glm_table.loc['year_c', 'odds_ratio']
    report.add_heading("Fractional logit model")
    report.add_text(
        f"Coverage share modelled with a binomial GLM (logit link) on calendar year and region, "
        f"standard errors clustered by country. Each additional year multiplies the odds of "
        f"coverage by {year_or:.3f} (95% CI {glm_table.loc['year_c', 'or_ci_low']:.3f}-"
        f"{glm_table.loc['year_c', 'or_ci_high']:.3f})."
    )
    report.add_table(glm_table, caption="share ~ year + C(region)")
    report.add_figure(figures['odds_ratios'])

    report.add_metrics('n_countries', int(df['country_code'].nunique()))
    report.add_metrics('years', {'baseline': baseline, 'latest': latest})
    report.add_metrics('regional_summary', summary)
    report.add_metrics('tests', {name: res.to_dict() for name, res in tests.items()})
    report.add_metrics('pairwise_regions', pairwise)
    report.add_metrics('fractional_logit', {
        'n_obs': int(glm_fit.nobs),
        'coefficients': glm_table.reset_index().rename(columns={'index': 'term'}),
    })
    report.write(output_dir)

    return report.metrics
