"""
NHANES loader - blood heavy metals (lead, cadmium, mercury)

This module handles:
1. Building CDC download URLs for a survey cycle
2. Downloading and reading SAS XPT transport files
3. Merging demographics (DEMO) with the blood-metals lab file (PBCD) on SEQN
4. Recoding demographics and log-transforming concentrations

Source: https://wwwn.cdc.gov/nchs/nhanes/
"""
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from health_eda.config import require
from health_eda.data.cleaning import recode_levels, rename_columns
from health_eda.data.sources import download_file
from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)

CYCLE_SUFFIX = {
    "1999-2000": "",
    "2001-2002": "B",
    "2003-2004": "C",
    "2005-2006": "D",
    "2007-2008": "E",
    "2009-2010": "F",
    "2011-2012": "G",
    "2013-2014": "H",
    "2015-2016": "I",
    "2017-2018": "J",
}

SEX_LEVELS = {1: 'male', 2: 'female'}

# RIDRETH3 (2011+), reference level first
RACE3_LEVELS = {
    1: 'mexican_american',
    2: 'other_hispanic',
    3: 'nh_white',
    4: 'nh_black',
    6: 'nh_asian',
    7: 'other',
}

# RIDRETH1 (all cycles)
RACE1_LEVELS = {
    1: 'mexican_american',
    2: 'other_hispanic',
    3: 'nh_white',
    4: 'nh_black',
    5: 'other',
}

DEMOGRAPHIC_RENAMES = {
    'RIDAGEYR': 'age',
    'INDFMPIR': 'poverty_ratio',
}

# SAS XPT stores exact zero as this denormal-looking value
XPT_ZERO = 1e-70


def cycle_suffix(cycle: str) -> str:
    """File suffix letter for a survey cycle, e.g. "2015-2016" -> "I"."""
    if cycle not in CYCLE_SUFFIX:
        raise ValueError(f"Unknown NHANES cycle: {cycle}. Known: {sorted(CYCLE_SUFFIX)}")
    return CYCLE_SUFFIX[cycle]


def table_name(cycle: str, table: str) -> str:
    suffix = cycle_suffix(cycle)
    return f"{table}_{suffix}" if suffix else table


def nhanes_table_url(base_url: str, cycle: str, table: str) -> str:
    """
    Public download URL of an NHANES data file.

    Example:
        >>> nhanes_table_url("https://wwwn.cdc.gov/Nchs/Data/Nhanes/Public", "2015-2016", "DEMO")
        'https://wwwn.cdc.gov/Nchs/Data/Nhanes/Public/2015/DataFiles/DEMO_I.xpt'
    """
    begin_year = cycle.split('-')[0]
    return f"{base_url.rstrip('/')}/{begin_year}/DataFiles/{table_name(cycle, table)}.xpt"


def read_xpt(path: Path) -> pd.DataFrame:
    """Read a SAS XPT file, fixing the transport-format zero artefact."""
    df = pd.read_sas(path, format='xport', encoding='utf-8')
    numeric = df.select_dtypes(include='number').columns
    df[numeric] = df[numeric].mask(df[numeric].abs() < XPT_ZERO, 0.0)
    return df


def load_xpt(
    url: str,
    cache_dir: Path,
    session: Optional[requests.Session] = None,
    timeout: float = 60
) -> pd.DataFrame:
    """Download (once) and read an XPT file."""
    target = Path(cache_dir) / "nhanes" / url.rsplit('/', 1)[-1]
    download_file(url, target, session=session, timeout=timeout)
    df = read_xpt(target)
    logger.info(f"Read {target.name}: {len(df)} rows, {len(df.columns)} columns")
    return df


def merge_tables(demo: pd.DataFrame, metals: pd.DataFrame) -> pd.DataFrame:
    """
    Merge demographics with lab results on SEQN.

    Inner join: only participants with a lab record are kept. Lab weights
    live in the lab file and survive the merge.
    """
    if 'SEQN' not in demo.columns or 'SEQN' not in metals.columns:
        raise ValueError("Both tables must carry the SEQN respondent id")

    demo = demo.copy()
    metals = metals.copy()
    demo['SEQN'] = demo['SEQN'].astype('int64')
    metals['SEQN'] = metals['SEQN'].astype('int64')

    overlap = (set(demo.columns) & set(metals.columns)) - {'SEQN'}
    merged = demo.merge(metals.drop(columns=list(overlap)), on='SEQN', how='inner')
    return merged.sort_values('SEQN').reset_index(drop=True)


def load_metals_panel(
    config: Dict[str, Any],
    cache_dir: Path,
    session: Optional[requests.Session] = None
) -> pd.DataFrame:
    """Download DEMO + PBCD for the configured cycle and merge them."""
    nh_cfg = config.get('data', {}).get('nhanes', {})
    base_url = require(config, 'data.nhanes.base_url')
    cycle = require(config, 'data.nhanes.cycle')
    timeout = config.get('http', {}).get('timeout', 60)

    demo = load_xpt(nhanes_table_url(base_url, cycle, nh_cfg.get('demographics_table', 'DEMO')),
                    cache_dir, session=session, timeout=timeout)
    metals = load_xpt(nhanes_table_url(base_url, cycle, nh_cfg.get('metals_table', 'PBCD')),
                      cache_dir, session=session, timeout=timeout)

    panel = merge_tables(demo, metals)
    logger.info(f"NHANES {cycle} metals panel: {len(panel)} participants")
    return panel


def clean_metals(
    df: pd.DataFrame,
    metals: Dict[str, str],
    weights: str,
    strata: str,
    psu: str,
    min_age: int = 20
) -> pd.DataFrame:
    """
    Clean the merged NHANES frame for survey analysis.

    Rows are only dropped when a design variable is missing. Rows outside the
    analysis domain (younger than `min_age` or with a zero exam weight) are
    kept and flagged by `in_domain = False` so that variance estimation still
    sees every PSU.

    Args:
        df: Merged DEMO + PBCD frame
        metals: Lab variable -> short name (e.g. {"LBXBPB": "lead"})
        weights: Weight column (e.g. "WTMEC2YR")
        strata: Stratum column ("SDMVSTRA")
        psu: PSU column ("SDMVPSU")
        min_age: Minimum age in years for the analysis domain

    Returns:
        DataFrame with age, sex, race_ethnicity, poverty_ratio, one column
        per metal, `log_<metal>` columns, design columns and `in_domain`
    """
    missing = [c for c in list(metals) + [weights, strata, psu, 'RIAGENDR', 'RIDAGEYR']
               if c not in df.columns]
    if missing:
        raise ValueError(f"NHANES frame is missing columns: {missing}")

    df = rename_columns(df, {**DEMOGRAPHIC_RENAMES, **metals})

    df = recode_levels(df, 'RIAGENDR', SEX_LEVELS, ordered=['male', 'female'])
    df = df.rename(columns={'RIAGENDR': 'sex'})

    if 'RIDRETH3' in df.columns:
        race_col, race_map = 'RIDRETH3', RACE3_LEVELS
    elif 'RIDRETH1' in df.columns:
        race_col, race_map = 'RIDRETH1', RACE1_LEVELS
    else:
        raise ValueError("No race/ethnicity column (RIDRETH3 or RIDRETH1)")
    race_order = ['nh_white'] + [v for v in race_map.values() if v != 'nh_white']
    df = recode_levels(df, race_col, race_map, ordered=race_order)
    df = df.rename(columns={race_col: 'race_ethnicity'})

    if 'poverty_ratio' not in df.columns:
        df['poverty_ratio'] = np.nan

    metal_names = list(metals.values())
    for name in metal_names:
        values = pd.to_numeric(df[name], errors='coerce')
        df[name] = values
        df[f'log_{name}'] = np.log(values.where(values > 0))

    n_before = len(df)
    df = df.dropna(subset=[weights, strata, psu]).reset_index(drop=True)
    if len(df) < n_before:
        logger.info(f"Dropped {n_before - len(df)} rows without design variables")

    covariates = ['age', 'sex', 'race_ethnicity', 'poverty_ratio']
    # model covariates may be missing; svyglm drops those rows itself
    df['in_domain'] = (df['age'] >= min_age) & (df[weights] > 0)

    keep = (['SEQN'] + covariates + metal_names + [f'log_{m}' for m in metal_names]
            + [weights, strata, psu, 'in_domain'])
    df = df[keep]
    logger.info(f"Analysis domain: {int(df['in_domain'].sum())} of {len(df)} participants")
    return df
