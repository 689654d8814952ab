"""
Survey-weighted estimation for complex sample designs (NHANES)

Implements design-based inference for:
- weighted means (`svymean`) and domain means (`svyby`)
- weighted GLMs (`svyglm`)

Point estimates come from weighted estimating equations (statsmodels GLM with
variance weights for regressions). Standard errors use Taylor linearization:
per-observation influence values are summed within PSUs, and the variance is

    V = A^-1 B A^-1,   B = sum_h n_h/(n_h - 1) sum_j (z_hj - zbar_h)(z_hj - zbar_h)'

where z_hj is the total for PSU j in stratum h. PSUs are sampled with
replacement within strata; finite population corrections are not applied.

Domains (subpopulations) keep every PSU of the full design: rows outside the
domain contribute zero influence, so strata and PSU counts are unchanged.
"""
import re
from dataclasses import dataclass, field
import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Union
from scipy import stats
import statsmodels.api as sm
import statsmodels.formula.api as smf

from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)

LONELY_PSU_POLICIES = ("fail", "certainty", "adjust")

FAMILIES = {
    'gaussian': lambda: sm.families.Gaussian(),
    'binomial': lambda: sm.families.Binomial(),
    'poisson': lambda: sm.families.Poisson(),
    'gamma_log': lambda: sm.families.Gamma(link=sm.families.links.Log()),
}


@dataclass
class SurveyDesign:
    """
    A stratified, clustered, weighted sample.

    Attributes:
        data: Full sample (every PSU of the design)
        weights: Sampling weight column
        strata: Stratum column (None = a single stratum)
        psu: PSU/cluster column (None = each row is its own PSU)
        lonely_psu: What to do with strata holding a single PSU:
                    "fail" raises, "certainty" contributes zero variance,
                    "adjust" centres that PSU on the grand mean
        domain: Boolean mask of rows in the analysis subpopulation (None = all)
    """
    data: pd.DataFrame
    weights: str
    strata: Optional[str] = None
    psu: Optional[str] = None
    lonely_psu: str = "fail"
    domain: Optional[np.ndarray] = field(default=None, repr=False)

    def __post_init__(self):
        if self.lonely_psu not in LONELY_PSU_POLICIES:
            raise ValueError(f"Unknown lonely_psu policy: {self.lonely_psu}")
        for col in (self.weights, self.strata, self.psu):
            if col is not None and col not in self.data.columns:
                raise ValueError(f"Design column not found: {col}")
        design_cols = [c for c in (self.weights, self.strata, self.psu) if c is not None]
        if self.data[design_cols].isna().any().any():
            raise ValueError("Design variables must not contain missing values")
        if (self.data[self.weights] < 0).any():
            raise ValueError("Sampling weights must be non-negative")

        self.data = self.data.reset_index(drop=True)
        if self.domain is None:
            self.domain = np.ones(len(self.data), dtype=bool)
        else:
            self.domain = np.asarray(self.domain, dtype=bool)
            if len(self.domain) != len(self.data):
                raise ValueError("Domain mask length does not match the data")

    def subset(self, mask: Union[pd.Series, np.ndarray]) -> 'SurveyDesign':
        """Restrict estimation to a subpopulation without dropping PSUs."""
        mask = np.asarray(mask, dtype=bool)
        return SurveyDesign(
            data=self.data,
            weights=self.weights,
            strata=self.strata,
            psu=self.psu,
            lonely_psu=self.lonely_psu,
            domain=self.domain & mask,
        )

    @property
    def strata_values(self) -> np.ndarray:
        if self.strata is None:
            return np.zeros(len(self.data), dtype=int)
        return self.data[self.strata].to_numpy()

    @property
    def psu_values(self) -> np.ndarray:
        if self.psu is None:
            return np.arange(len(self.data))
        return self.data[self.psu].to_numpy()

    @property
    def n_strata(self) -> int:
        return int(pd.Series(self.strata_values).nunique())

    @property
    def n_psu(self) -> int:
        # PSU ids are nested within strata
        keys = pd.DataFrame({'h': self.strata_values, 'j': self.psu_values})
        return int(len(keys.drop_duplicates()))

    @property
    def degrees_of_freedom(self) -> int:
        """Design degrees of freedom: #PSUs - #strata."""
        return self.n_psu - self.n_strata


@dataclass
class SurveyEstimate:
    """A design-based estimate with its linearization SE."""
    estimate: float
    std_error: float
    df: int
    ci_low: float
    ci_high: float
    n: int

    def to_dict(self) -> Dict[str, float]:
        return {
            'estimate': self.estimate,
            'std_error': self.std_error,
            'df': self.df,
            'ci_low': self.ci_low,
            'ci_high': self.ci_high,
            'n': self.n,
        }


@dataclass
class SurveyGLMResult:
    """Coefficient table and metadata of a survey-weighted GLM."""
    formula: str
    family: str
    coefficients: pd.DataFrame
    df_resid: int
    n_obs: int
    cov_params: pd.DataFrame
    fitted: object = field(repr=False, default=None)

    @property
    def params(self) -> pd.Series:
        return self.coefficients['estimate']

    @property
    def std_errors(self) -> pd.Series:
        return self.coefficients['std_error']


def stratified_meat(scores: np.ndarray, design: SurveyDesign) -> np.ndarray:
    """
    Between-PSU variance of influence totals, B in V = A^-1 B A^-1.

    Args:
        scores: (n_rows, p) per-row influence values on the full design rows
                (zeros outside the domain)
        design: Survey design

    Returns:
        (p, p) matrix
    """
    scores = np.asarray(scores, dtype=np.float64)
    if scores.ndim == 1:
        scores = scores[:, None]
    p = scores.shape[1]

    frame = pd.DataFrame(scores)
    frame['_h'] = design.strata_values
    frame['_j'] = design.psu_values
    totals = frame.groupby(['_h', '_j'], sort=True).sum()

    grand_mean = totals.to_numpy().mean(axis=0)
    meat = np.zeros((p, p))

    for stratum, block in totals.groupby(level='_h'):
        z = block.to_numpy()
        n_h = len(z)
        if n_h > 1:
            centered = z - z.mean(axis=0)
            meat += n_h / (n_h - 1) * centered.T @ centered
            continue

        if design.lonely_psu == "fail":
            raise ValueError(
                f"Stratum {stratum} has only one PSU; set lonely_psu to 'certainty' or 'adjust'"
            )
        if design.lonely_psu == "adjust":
            centered = z - grand_mean
            meat += centered.T @ centered
        # "certainty": contributes nothing

    return meat


def _interval(estimate: float, se: float, df: int, level: float = 0.95):
    q = stats.t.ppf(0.5 + level / 2, df) if df > 0 else stats.norm.ppf(0.5 + level / 2)
    return estimate - q * se, estimate + q * se


def svymean(design: SurveyDesign, column: str, level: float = 0.95) -> SurveyEstimate:
    """
    Weighted (ratio) mean of `column` over the design domain.

    Rows in the domain with a missing value are excluded from the domain.
    """
    values = design.data[column].to_numpy(dtype=np.float64, na_value=np.nan)
    weights = design.data[design.weights].to_numpy(dtype=np.float64)
    use = design.domain & ~np.isnan(values) & (weights > 0)
    if not use.any():
        raise ValueError(f"No observations with positive weight for {column}")

    w = np.where(use, weights, 0.0)
    y = np.where(use, values, 0.0)
    total_w = w.sum()
    mean = float((w * y).sum() / total_w)

    influence = w * (y - mean) / total_w
    variance = float(stratified_meat(influence, design)[0, 0])
    se = float(np.sqrt(variance))
    df = design.degrees_of_freedom
    low, high = _interval(mean, se, df, level)

    return SurveyEstimate(estimate=mean, std_error=se, df=df,
                          ci_low=float(low), ci_high=float(high), n=int(use.sum()))


def svyby(design: SurveyDesign, column: str, by: str, level: float = 0.95) -> pd.DataFrame:
    """
    Domain means of `column` for each level of `by`.

    Returns:
        DataFrame with one row per level: by, estimate, std_error, df,
        ci_low, ci_high, n
    """
    groups = design.data[by]
    levels = groups.cat.categories if isinstance(groups.dtype, pd.CategoricalDtype) \
        else sorted(groups.dropna().unique())

    observed = (design.data[column].notna().to_numpy()
                & (design.data[design.weights].to_numpy(dtype=np.float64) > 0))

    rows = []
    for level_value in levels:
        sub = design.subset((groups == level_value).to_numpy())
        if not (sub.domain & observed).any():
            logger.info(f"svyby: no observed {column} for {by}={level_value}, skipped")
            continue
        est = svymean(sub, column, level=level)
        rows.append({by: level_value, **est.to_dict()})

    return pd.DataFrame(rows)


def svyglm(
    formula: str,
    design: SurveyDesign,
    family: str = "gaussian",
    level: float = 0.95
) -> SurveyGLMResult:
    """
    Fit a survey-weighted GLM with design-based standard errors.

    The GLM is fitted by statsmodels on domain rows that have positive weight
    and complete model variables, with the sampling weights as variance
    weights (normalised to mean one). Covariance is the linearization
    sandwich over the full design; t-tests use df = design df - p + 1.

    Args:
        formula: Patsy formula, e.g. "log_lead ~ age + C(sex)"
        design: Survey design (use `design.subset` for subpopulations)
        family: One of "gaussian", "binomial", "poisson", "gamma_log"
        level: Confidence level for intervals

    Returns:
        SurveyGLMResult
    """
    if family not in FAMILIES:
        raise ValueError(f"Unknown family: {family}. Known: {sorted(FAMILIES)}")

    data = design.data
    weights = data[design.weights].to_numpy(dtype=np.float64)

    # Rows the model can use: in domain, positive weight, no missing model variables
    model_vars = _formula_variables(formula, data.columns)
    complete = data[model_vars].notna().all(axis=1).to_numpy()
    use = design.domain & complete & (weights > 0)
    if use.sum() == 0:
        raise ValueError("No complete in-domain observations to fit")

    fit_data = data.loc[use].copy()
    for col in model_vars:
        if isinstance(fit_data[col].dtype, pd.CategoricalDtype):
            fit_data[col] = fit_data[col].cat.remove_unused_categories()
    fit_weights = weights[use] / weights[use].mean()

    model = smf.glm(formula, data=fit_data, family=FAMILIES[family](), var_weights=fit_weights)
    fitted = model.fit()

    names = list(model.exog_names)
    p = len(names)
    df_resid = design.degrees_of_freedom - p + 1
    if df_resid <= 0:
        raise ValueError(
            f"Design has {design.n_psu} PSUs in {design.n_strata} strata; "
            f"too few for {p} coefficients"
        )

    params = fitted.params.to_numpy()
    scores = np.zeros((len(data), p))
    scores[use] = model.score_obs(params, scale=fitted.scale)
    bread = np.linalg.inv(-model.hessian(params, scale=fitted.scale))
    cov = bread @ stratified_meat(scores, design) @ bread

    se = np.sqrt(np.diag(cov))
    t_stat = params / se
    p_values = 2 * stats.t.sf(np.abs(t_stat), df_resid)
    q = stats.t.ppf(0.5 + level / 2, df_resid)

    coefficients = pd.DataFrame({
        'estimate': params,
        'std_error': se,
        't_value': t_stat,
        'p_value': p_values,
        'ci_low': params - q * se,
        'ci_high': params + q * se,
    }, index=names)

    logger.info(f"svyglm {formula} ({family}): n={int(use.sum())}, df={df_resid}")

    return SurveyGLMResult(
        formula=formula,
        family=family,
        coefficients=coefficients,
        df_resid=int(df_resid),
        n_obs=int(use.sum()),
        cov_params=pd.DataFrame(cov, index=names, columns=names),
        fitted=fitted,
    )


def _formula_variables(formula: str, columns: List[str]) -> List[str]:
    """Data columns mentioned in a formula (by token match)."""
    tokens = set(re.findall(r"[A-Za-z_][A-Za-z0-9_]*", formula))
    return [c for c in columns if c in tokens]
