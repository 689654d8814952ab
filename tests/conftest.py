"""Shared fixtures: synthetic stand-ins for every dataset, no network access."""
import copy

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from health_eda.config import load_config
from health_eda.data.lung_deaths import combine_series


@pytest.fixture
def config():
    """Default config with cheap model settings."""
    cfg = copy.deepcopy(load_config())
    cfg['medicaid']['models'] = {
        'decision_tree': {'enabled': True, 'min_samples_leaf': 5, 'prune': True, 'cv_folds': 3},
        'bagging': {'enabled': True, 'n_estimators': 25, 'n_jobs': 1},
        'random_forest': {'enabled': True, 'n_estimators': 25, 'max_features': 0.33, 'n_jobs': 1},
        'xgboost': {'enabled': True, 'n_estimators': 50, 'max_depth': 3, 'learning_rate': 0.1},
        'bart': {'enabled': False},
    }
    return cfg


@pytest.fixture
def medicaid_raw():
    """Raw frame shaped like AER::Medicaid1986 as served by Rdatasets."""
    rng = np.random.default_rng(0)
    n = 160
    health1 = rng.normal(0, 1.5, n)
    access = rng.uniform(0, 1, n)
    return pd.DataFrame({
        'rownames': np.arange(1, n + 1),
        'visits': rng.poisson(np.exp(0.5 + 0.4 * health1 + access)),
        'exposure': rng.integers(30, 366, n),
        'children': rng.integers(0, 5, n),
        'age': rng.integers(18, 70, n),
        'income': rng.gamma(2.0, 0.5, n),
        'health1': health1,
        'health2': rng.normal(0, 1, n),
        'access': access,
        'married': rng.choice(['yes', 'no'], n),
        'gender': rng.choice(['female', 'male'], n),
        'ethnicity': rng.choice(['cauc', 'other'], n),
        'school': rng.integers(0, 16, n),
        'enroll': rng.choice(['yes', 'no', 'na'], n),
        'program': rng.choice(['afdc', 'ssi'], n),
    })


def _monthly_series(base: float, amplitude: float, seed: int, n_months: int = 72) -> pd.DataFrame:
    """(time, value) frame like an R monthly ts from 1974, peaking in January."""
    rng = np.random.default_rng(seed)
    month_index = np.arange(n_months)
    seasonal = amplitude * np.cos(2 * np.pi * (month_index % 12) / 12)
    return pd.DataFrame({
        'time': 1974 + month_index / 12,
        'value': np.round(base + seasonal + rng.normal(0, 30, n_months)),
    })


@pytest.fixture
def lung_raw():
    """(male_raw, female_raw) pair shaped like datasets::mdeaths / fdeaths."""
    return _monthly_series(1500, 500, seed=1), _monthly_series(600, 200, seed=2)


@pytest.fixture
def lung_wide(lung_raw):
    return combine_series(*lung_raw)


@pytest.fixture
def nhanes_panel():
    """Merged DEMO + PBCD frame: 15 strata x 2 PSUs, XPT-style float codes."""
    rng = np.random.default_rng(42)
    n = 600
    strata = np.repeat(np.arange(120, 135), n // 15)
    psu = np.tile([1, 2], n // 2)
    age = rng.integers(6, 80, n)
    sex = rng.choice([1, 2], n)
    race = rng.choice([1, 2, 3, 4, 6, 7], n)
    poverty = np.round(rng.uniform(0, 5, n), 2)
    poverty[rng.random(n) < 0.05] = np.nan
    weights = rng.uniform(5_000, 50_000, n)
    weights[rng.random(n) < 0.1] = 0.0

    log_lead = -0.2 + 0.015 * (age - 40) + 0.3 * (sex == 1) + rng.normal(0, 0.5, n)
    log_cadmium = -1.2 + 0.01 * (age - 40) - 0.1 * poverty + rng.normal(0, 0.6, n)
    log_mercury = -0.3 + 0.5 * (race == 6) + rng.normal(0, 0.8, n)

    return pd.DataFrame({
        'SEQN': np.arange(83732, 83732 + n).astype(float),
        'RIAGENDR': sex.astype(float),
        'RIDAGEYR': age.astype(float),
        'RIDRETH3': race.astype(float),
        'INDFMPIR': poverty,
        'SDMVSTRA': strata.astype(float),
        'SDMVPSU': psu.astype(float),
        'WTMEC2YR': weights,
        'LBXBPB': np.exp(log_lead),
        'LBXBCD': np.exp(log_cadmium),
        'LBXTHG': np.exp(log_mercury),
    })


@pytest.fixture
def gho_records():
    """GHO OData `value` records for an ART-coverage style indicator."""
    rng = np.random.default_rng(7)
    regions = {'AFR': 'Africa', 'AMR': 'Americas', 'EUR': 'Europe', 'SEAR': 'South-East Asia'}
    start = {'AFR': 20.0, 'AMR': 40.0, 'EUR': 55.0, 'SEAR': 15.0}

    records = []
    for code, name in regions.items():
        for i in range(6):
            country = f"{code[:2]}{i}"
            for year in range(2010, 2016):
                value = min(100.0, start[code] + 5 * (year - 2010) + rng.normal(0, 3))
                records.append({
                    'Id': len(records),
                    'IndicatorCode': 'HIV_0000000009',
                    'SpatialDimType': 'COUNTRY',
                    'SpatialDim': country,
                    'ParentLocationCode': code,
                    'ParentLocation': name,
                    'TimeDimType': 'YEAR',
                    'TimeDim': year,
                    'Dim1': None,
                    'Value': f"{value:.0f} [{value - 5:.0f}-{value + 5:.0f}]",
                    'NumericValue': round(value, 1),
                    'Low': round(value - 5, 1),
                    'High': round(value + 5, 1),
                })

    # aggregate rows the tidy step must drop
    records.append({
        'Id': len(records), 'IndicatorCode': 'HIV_0000000009', 'SpatialDimType': 'REGION',
        'SpatialDim': 'AFR', 'ParentLocationCode': None, 'ParentLocation': None,
        'TimeDimType': 'YEAR', 'TimeDim': 2015, 'Dim1': None, 'Value': '50',
        'NumericValue': 50.0, 'Low': None, 'High': None,
    })
    records.append({
        'Id': len(records), 'IndicatorCode': 'HIV_0000000009', 'SpatialDimType': 'COUNTRY',
        'SpatialDim': 'XX0', 'ParentLocationCode': 'AFR', 'ParentLocation': 'Africa',
        'TimeDimType': 'YEAR', 'TimeDim': 2015, 'Dim1': None, 'Value': 'No data',
        'NumericValue': None, 'Low': None, 'High': None,
    })
    return records


@pytest.fixture
def gho_countries(gho_records):
    codes = sorted({r['SpatialDim'] for r in gho_records if r['SpatialDimType'] == 'COUNTRY'})
    return [{'Code': code, 'Title': f"Country {code}", 'ParentCode': code[:2]} for code in codes]


class FakeResponse:
    """Just enough of requests.Response for the data-source helpers."""

    def __init__(self, payload=None, status_code=200, content=b""):
        self.payload = payload
        self.status_code = status_code
        self.content = content

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON object could be decoded")
        return self.payload

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeSession:
    """Routes GET requests by URL suffix; records every call."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get(self, url, params=None, timeout=None, stream=False):
        self.calls.append({'url': url, 'params': params, 'timeout': timeout})
        for suffix, response in self.routes.items():
            if url.endswith(suffix):
                return response
        return FakeResponse(status_code=404)


@pytest.fixture
def fake_session_factory():
    return FakeSession


@pytest.fixture
def fake_response_factory():
    return FakeResponse
