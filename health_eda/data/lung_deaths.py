"""
Monthly UK deaths from bronchitis, emphysema and asthma, 1974-1979
(R datasets::mdeaths and datasets::fdeaths).

The R series are monthly `ts` objects; the Rdatasets CSVs carry them as
(time, value) pairs where time is a decimal year (1974, 1974.083, ...).
"""
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from health_eda.data.cleaning import to_long
from health_eda.data.sources import fetch_rdataset
from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)

DEFAULT_SEASONS: Dict[str, Sequence[int]] = {
    'winter': (12, 1, 2),
    'spring': (3, 4, 5),
    'summer': (6, 7, 8),
    'autumn': (9, 10, 11),
}


def decimal_year_to_period(time_value: float) -> Tuple[int, int]:
    """
    Convert an R monthly `ts` time stamp to (year, month).

    1974.0 -> (1974, 1), 1974.0833 -> (1974, 2), 1979.9167 -> (1979, 12)
    """
    year = int(np.floor(time_value + 1e-9))
    month = int(round((time_value - year) * 12)) + 1
    if month == 13:
        year, month = year + 1, 1
    return year, month


def series_frame(raw: pd.DataFrame, value_name: str) -> pd.DataFrame:
    """Turn a (time, value) Rdatasets frame into (date, year, month, <value_name>)."""
    if 'time' not in raw.columns or 'value' not in raw.columns:
        raise ValueError(f"Expected 'time' and 'value' columns, got {list(raw.columns)}")

    periods = [decimal_year_to_period(float(t)) for t in raw['time']]
    out = pd.DataFrame(periods, columns=['year', 'month'])
    out[value_name] = pd.to_numeric(raw['value'].to_numpy(), errors='coerce')
    out['date'] = pd.to_datetime(dict(year=out['year'], month=out['month'], day=1))
    return out[['date', 'year', 'month', value_name]]


def combine_series(male_raw: pd.DataFrame, female_raw: pd.DataFrame) -> pd.DataFrame:
    """
    Build the wide monthly frame: date, year, month, male, female, total.

    Only months present in both series are kept.
    """
    male = series_frame(male_raw, 'male')
    female = series_frame(female_raw, 'female')
    wide = male.merge(female, on=['date', 'year', 'month'], how='inner')
    wide['total'] = wide['male'] + wide['female']
    return wide.sort_values('date').reset_index(drop=True)


def load_lung_deaths(config: Dict[str, Any], cache_dir: Optional[Path] = None) -> pd.DataFrame:
    """Load mdeaths and fdeaths and combine them into the wide monthly frame."""
    coords = config.get('data', {}).get('rdatasets', {})
    male_cfg = coords.get('male_deaths', {'package': 'datasets', 'item': 'mdeaths'})
    female_cfg = coords.get('female_deaths', {'package': 'datasets', 'item': 'fdeaths'})

    male_raw = fetch_rdataset(male_cfg['item'], male_cfg['package'], cache_dir=cache_dir)
    female_raw = fetch_rdataset(female_cfg['item'], female_cfg['package'], cache_dir=cache_dir)

    wide = combine_series(male_raw, female_raw)
    logger.info(
        f"Lung deaths: {len(wide)} months "
        f"({wide['date'].min():%Y-%m} to {wide['date'].max():%Y-%m})"
    )
    return wide


def add_season(
    df: pd.DataFrame,
    seasons: Optional[Mapping[str, Sequence[int]]] = None,
    month_col: str = 'month'
) -> pd.DataFrame:
    """Label each row with its season; months not covered by `seasons` get NaN."""
    seasons = seasons or DEFAULT_SEASONS
    month_to_season = {int(m): name for name, months in seasons.items() for m in months}
    df = df.copy()
    df['season'] = pd.Categorical(
        df[month_col].map(month_to_season),
        categories=list(seasons.keys()),
    )
    return df


def deaths_long(wide: pd.DataFrame) -> pd.DataFrame:
    """One row per month x sex with a `deaths` column."""
    id_vars = [c for c in ('date', 'year', 'month', 'season') if c in wide.columns]
    return to_long(wide, id_vars=id_vars, value_vars=['male', 'female'],
                   var_name='sex', value_name='deaths')
