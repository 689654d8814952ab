"""
Medicaid doctor-visit counts (AER::Medicaid1986).

996 Medicaid recipients in California, 1986. Target: number of doctor visits.
Covariates: exposure (days of coverage), children, age, income, two health
scores, access, marital status, gender, ethnicity, schooling, enrollment in a
managed-care demonstration, and the Medicaid program (AFDC or SSI).
"""
import pandas as pd
from pathlib import Path
from typing import Any, Dict, Optional

from health_eda.data.cleaning import drop_missing, recode_binary, recode_levels
from health_eda.data.sources import fetch_rdataset
from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)

MEDICAID_NUMERIC = [
    'visits', 'exposure', 'children', 'age', 'income',
    'health1', 'health2', 'access', 'school',
]

# Two-level factors -> 0/1 with the given level as 1
MEDICAID_BINARY = {
    'married': 'yes',
    'gender': 'female',
    'ethnicity': 'other',
    'program': 'ssi',
}

# enroll has a third "na" level (not offered the demonstration)
ENROLL_LEVELS = {'no': 'no', 'yes': 'yes', 'na': 'not_offered'}


def load_medicaid(config: Dict[str, Any], cache_dir: Optional[Path] = None) -> pd.DataFrame:
    """Load the raw Medicaid1986 frame using config coordinates."""
    coords = config.get('data', {}).get('rdatasets', {}).get('medicaid', {})
    return fetch_rdataset(
        coords.get('item', 'Medicaid1986'),
        coords.get('package', 'AER'),
        cache_dir=cache_dir,
    )


def clean_medicaid(df: pd.DataFrame) -> pd.DataFrame:
    """
    Clean the raw Medicaid frame for modeling.

    - drops the Rdatasets row-name column
    - lower-cases factor levels and recodes two-level factors to 0/1
      (columns renamed to say which level is 1: `female`, `married`, ...)
    - keeps `enroll` as a three-level categorical
    - coerces numeric columns and drops incomplete rows

    Returns:
        Clean DataFrame ready for `build_design_matrix`
    """
    df = df.drop(columns=[c for c in ('rownames', 'Unnamed: 0') if c in df.columns]).copy()

    for col in MEDICAID_NUMERIC:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors='coerce')

    binary_cols = [c for c in MEDICAID_BINARY if c in df.columns]
    df = recode_binary(df, binary_cols, MEDICAID_BINARY)
    df = df.rename(columns={
        'gender': 'female',
        'ethnicity': 'nonwhite',
        'program': 'ssi',
    })

    if 'enroll' in df.columns:
        df['enroll'] = df['enroll'].astype(str).str.strip().str.lower()
        df = recode_levels(df, 'enroll', ENROLL_LEVELS, ordered=['no', 'yes', 'not_offered'])

    df = drop_missing(df)

    for col in ('married', 'female', 'nonwhite', 'ssi'):
        if col in df.columns:
            df[col] = df[col].astype(int)

    logger.info(f"Medicaid frame: {len(df)} rows, {len(df.columns)} columns")
    return df
