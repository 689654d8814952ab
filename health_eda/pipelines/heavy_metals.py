"""
Write-up 3: Blood heavy metals in US adults (NHANES, survey-weighted)

Pipeline:
    DEMO + PBCD -> recode -> SurveyDesign (weights/strata/PSU) -> adult domain
    -> geometric means by race/ethnicity and sex (svyby on log scale)
    -> svyglm of log concentration on demographics, one model per metal
"""
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
import requests

from health_eda.data.nhanes import clean_metals, load_metals_panel
from health_eda.data.sources import session_from_config
from health_eda.models.survey import SurveyDesign, svyby, svyglm, svymean
from health_eda.reporting.report import Report
from health_eda.visualization import plots
from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)

NAME = "heavy_metals"

UNITS = {'lead': 'ug/dL', 'cadmium': 'ug/L', 'mercury': 'ug/L'}


def geometric_means(design: SurveyDesign, metal: str, by: str) -> pd.DataFrame:
    """Survey-weighted geometric means (with CIs) of a metal by `by`."""
    table = svyby(design, f'log_{metal}', by)
    return pd.DataFrame({
        by: table[by],
        'geometric_mean': np.exp(table['estimate']),
        'ci_low': np.exp(table['ci_low']),
        'ci_high': np.exp(table['ci_high']),
        'n': table['n'],
    }).set_index(by)


def percent_change(coefficients: pd.DataFrame) -> pd.DataFrame:
    """Coefficients of a log-outcome model as % change in the geometric mean."""
    table = coefficients.drop(index=[i for i in coefficients.index if i == 'Intercept'])
    return pd.DataFrame({
        'pct_change': 100 * (np.exp(table['estimate']) - 1),
        'ci_low': 100 * (np.exp(table['ci_low']) - 1),
        'ci_high': 100 * (np.exp(table['ci_high']) - 1),
        'p_value': table['p_value'],
    })


def run(
    config: Dict[str, Any],
    output_dir: Path,
    panel: Optional[pd.DataFrame] = None,
    cache_dir: Optional[Path] = None,
    session: Optional[requests.Session] = None
) -> Dict[str, Any]:
    """
    Run the NHANES heavy-metals write-up.

    Args:
        config: Full config dict
        output_dir: Where report.md, results.json and figures/ go
        panel: Pre-merged DEMO + PBCD frame (skips the download)
        cache_dir: Download cache for the XPT files
        session: HTTP session for downloads

    Returns:
        The metrics dict written to results.json
    """
    cfg = config.get('heavy_metals', {})
    metals = cfg.get('metals', {'LBXBPB': 'lead', 'LBXBCD': 'cadmium', 'LBXTHG': 'mercury'})
    weights = cfg.get('weights', 'WTMEC2YR')
    strata = cfg.get('strata', 'SDMVSTRA')
    psu = cfg.get('psu', 'SDMVPSU')
    covariates = cfg.get('covariates', 'age + C(sex) + C(race_ethnicity) + poverty_ratio')
    family = cfg.get('family', 'gaussian')
    min_age = int(cfg.get('min_age', 20))
    output_dir = Path(output_dir)
    fig_dir = output_dir / "figures"

    if panel is None:
        if session is None:
            session = session_from_config(config)
        panel = load_metals_panel(config, cache_dir, session=session)

    df = clean_metals(panel, metals, weights, strata, psu, min_age=min_age)
    design = SurveyDesign(df, weights=weights, strata=strata, psu=psu,
                          lonely_psu=cfg.get('lonely_psu', 'adjust'))
    adults = design.subset(df['in_domain'])
    logger.info(f"Design: {design.n_strata} strata, {design.n_psu} PSUs, "
                f"{int(adults.domain.sum())} adults in domain")

    overall = {}
    by_race = {}
    by_sex = {}
    models = {}
    figures = {}

    for name in metals.values():
        log_mean = svymean(adults, f'log_{name}')
        overall[name] = {
            'geometric_mean': float(np.exp(log_mean.estimate)),
            'ci_low': float(np.exp(log_mean.ci_low)),
            'ci_high': float(np.exp(log_mean.ci_high)),
            'n': log_mean.n,
        }
        by_race[name] = geometric_means(adults, name, 'race_ethnicity')
        by_sex[name] = geometric_means(adults, name, 'sex')
        models[name] = svyglm(f"log_{name} ~ {covariates}", adults, family=family)

        figures[f'coef_{name}'] = plots.plot_coefficients(
            models[name].coefficients, fig_dir / f"coefficients_{name}.png",
            title=f"Blood {name}: adjusted % difference in geometric mean",
            transform=lambda v: 100 * (np.exp(v) - 1),
            reference=0.0,
            xlabel="% difference (95% CI)",
        )
        figures[f'box_{name}'] = plots.plot_box_by_group(
            df.loc[df['in_domain']], f'log_{name}', 'race_ethnicity',
            fig_dir / f"log_{name}_by_race.png",
            title=f"log blood {name} by race/ethnicity (unweighted)",
        )

    # Write-up
    report = Report("Blood heavy metals in US adults: survey-weighted analysis")
    report.add_heading("Data and design")
    report.add_text(
        f"NHANES participants aged {min_age}+ with a positive MEC exam "
        f"weight ({weights}). Variances use Taylor linearization over "
        f"{design.n_psu} PSUs in {design.n_strata} strata "
        f"({design.degrees_of_freedom} design degrees of freedom); participants outside "
        f"the adult domain stay in the design so no PSU is lost."
    )
    report.add_table(
        pd.DataFrame(overall).T.assign(unit=lambda t: t.index.map(UNITS)),
        caption="Geometric mean concentration, all adults",
    )

    for name in metals.values():
        report.add_heading(f"{name.title()}")
        report.add_table(by_race[name], caption=f"Geometric mean {name} ({UNITS.get(name, '')}) by race/ethnicity")
        report.add_table(by_sex[name], caption=f"Geometric mean {name} by sex")
        report.add_figure(figures[f'box_{name}'])

        pct = percent_change(models[name].coefficients)
        report.add_table(pct, caption=f"svyglm: log_{name} ~ {covariates} (as % change)")
        significant = [term for term, p in pct['p_value'].items() if p < 0.05]
        report.add_text(
            f"{models[name].n_obs} adults in the model (residual df {models[name].df_resid}). "
            f"Terms with p < 0.05: {', '.join(significant) if significant else 'none'}."
        )
        report.add_figure(figures[f'coef_{name}'])

    report.add_metrics('design', {
        'n_rows': len(df),
        'n_domain': int(adults.domain.sum()),
        'n_strata': design.n_strata,
        'n_psu': design.n_psu,
        'degrees_of_freedom': design.degrees_of_freedom,
        'lonely_psu': design.lonely_psu,
    })
    report.add_metrics('overall_geometric_means', overall)
    report.add_metrics('by_race_ethnicity', {k: v.reset_index() for k, v in by_race.items()})
    report.add_metrics('by_sex', {k: v.reset_index() for k, v in by_sex.items()})
    report.add_metrics('models', {
        name: {
            'formula': res.formula,
            'family': res.family,
            'n_obs': res.n_obs,
            'df_resid': res.df_resid,
            'coefficients': res.coefficients.reset_index().rename(columns={'index': 'term'}),
        }
        for name, res in models.items()
    })
    report.write(output_dir)

    return report.metrics
