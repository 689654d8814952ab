"""
WHO Global Health Observatory (GHO) OData API client.

Endpoints used:
    {base}/{IndicatorCode}?$filter=SpatialDimType eq 'COUNTRY'
    {base}/DIMENSION/COUNTRY/DimensionValues

Both return {"value": [...records...]}.
"""
import pandas as pd
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from health_eda.data.sources import build_session, fetch_json, session_from_config
from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)

GHO_COLUMNS = {
    'SpatialDim': 'country_code',
    'ParentLocationCode': 'region_code',
    'ParentLocation': 'region',
    'TimeDim': 'year',
    'Dim1': 'dim1',
    'NumericValue': 'value',
    'Low': 'low',
    'High': 'high',
}


class GHOClient:
    """Thin read-only client for the GHO OData API."""

    def __init__(
        self,
        base_url: str = "https://ghoapi.azureedge.net/api",
        session: Optional[requests.Session] = None,
        timeout: float = 60
    ):
        self.base_url = base_url.rstrip('/')
        self.session = session or build_session()
        self.timeout = timeout

    def _get_records(self, path: str, params: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
        payload = fetch_json(f"{self.base_url}/{path}", params=params,
                             session=self.session, timeout=self.timeout)
        records = payload.get('value') if isinstance(payload, dict) else None
        if records is None:
            raise ValueError(f"Unexpected GHO payload for {path}: no 'value' list")
        return records

    def get_indicator(self, code: str, spatial_type: Optional[str] = "COUNTRY") -> List[Dict[str, Any]]:
        """Fetch all records of one indicator, optionally restricted to a spatial type."""
        params = None
        if spatial_type:
            params = {'$filter': f"SpatialDimType eq '{spatial_type}'"}
        records = self._get_records(code, params=params)
        logger.info(f"GHO {code}: {len(records)} records")
        return records

    def get_dimension_values(self, dimension: str = "COUNTRY") -> pd.DataFrame:
        """Code/title lookup for a dimension (countries, regions, ...)."""
        records = self._get_records(f"DIMENSION/{dimension}/DimensionValues")
        frame = pd.DataFrame.from_records(records)
        if frame.empty:
            return pd.DataFrame(columns=['code', 'name'])
        return frame.rename(columns={'Code': 'code', 'Title': 'name'})[['code', 'name']]


def tidy_indicator(records: List[Dict[str, Any]]) -> pd.DataFrame:
    """
    Flatten GHO indicator records to one row per country x year (x dim1).

    Returns:
        DataFrame with country_code, region_code, region, year, dim1,
        value, low, high; rows without a numeric value are dropped
    """
    frame = pd.DataFrame.from_records(records)
    if frame.empty:
        return pd.DataFrame(columns=list(GHO_COLUMNS.values()))

    if 'SpatialDimType' in frame.columns:
        frame = frame[frame['SpatialDimType'] == 'COUNTRY']

    for col in GHO_COLUMNS:
        if col not in frame.columns:
            frame[col] = None
    frame = frame[list(GHO_COLUMNS)].rename(columns=GHO_COLUMNS)

    frame['year'] = pd.to_numeric(frame['year'], errors='coerce').astype('Int64')
    for col in ('value', 'low', 'high'):
        frame[col] = pd.to_numeric(frame[col], errors='coerce')

    frame = frame.dropna(subset=['value', 'year'])
    return frame.sort_values(['country_code', 'year']).reset_index(drop=True)


def load_art_coverage(config: Dict[str, Any], client: Optional[GHOClient] = None) -> pd.DataFrame:
    """
    Load ART coverage (% of people living with HIV on treatment) by country and year.

    Returns:
        Tidy indicator frame with a `country` name column
    """
    gho_cfg = config.get('data', {}).get('who_gho', {})
    if client is None:
        client = GHOClient(
            base_url=gho_cfg.get('base_url', "https://ghoapi.azureedge.net/api"),
            session=session_from_config(config),
            timeout=config.get('http', {}).get('timeout', 60),
        )

    indicator = gho_cfg.get('art_coverage_indicator', 'HIV_0000000009')
    coverage = tidy_indicator(client.get_indicator(indicator))

    countries = client.get_dimension_values("COUNTRY")
    coverage = coverage.merge(
        countries.rename(columns={'code': 'country_code', 'name': 'country'}),
        on='country_code',
        how='left',
    )
    coverage['country'] = coverage['country'].fillna(coverage['country_code'])
    return coverage


def snapshot_path(config: Dict[str, Any], cache_dir: Path) -> Path:
    """Cache location of the parquet snapshot of the ART coverage indicator."""
    indicator = config.get('data', {}).get('who_gho', {}).get('art_coverage_indicator', 'HIV_0000000009')
    return Path(cache_dir) / "who_gho" / f"{indicator}.parquet"


def load_snapshot(path: Path) -> pd.DataFrame:
    """Read a coverage snapshot written by scripts/fetch_datasets.py."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"GHO snapshot not found: {path}. Run scripts/fetch_datasets.py first.")
    coverage = pd.read_parquet(path)
    logger.info(f"Loaded GHO snapshot {path.name}: {len(coverage)} rows")
    return coverage
