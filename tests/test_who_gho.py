import pytest

from health_eda.data.sources import DataSourceError
from health_eda.data.who_gho import (
    GHOClient,
    load_art_coverage,
    load_snapshot,
    snapshot_path,
    tidy_indicator,
)

BASE_URL = "https://ghoapi.azureedge.net/api"


@pytest.fixture
def gho_session(fake_session_factory, fake_response_factory, gho_records, gho_countries):
    return fake_session_factory({
        "/HIV_0000000009": fake_response_factory({'value': gho_records}),
        "/DIMENSION/COUNTRY/DimensionValues": fake_response_factory({'value': gho_countries}),
    })


def test_get_indicator_filters_on_country(gho_session, gho_records):
    client = GHOClient(BASE_URL, session=gho_session, timeout=5)
    records = client.get_indicator("HIV_0000000009")

    assert len(records) == len(gho_records)
    call = gho_session.calls[0]
    assert call['url'] == f"{BASE_URL}/HIV_0000000009"
    assert call['params'] == {'$filter': "SpatialDimType eq 'COUNTRY'"}
    assert call['timeout'] == 5


def test_get_indicator_without_filter(gho_session):
    GHOClient(BASE_URL, session=gho_session).get_indicator("HIV_0000000009", spatial_type=None)
    assert gho_session.calls[0]['params'] is None


def test_get_dimension_values(gho_session, gho_countries):
    countries = GHOClient(BASE_URL, session=gho_session).get_dimension_values("COUNTRY")
    assert list(countries.columns) == ['code', 'name']
    assert len(countries) == len(gho_countries)


def test_payload_without_value_list(fake_session_factory, fake_response_factory):
    session = fake_session_factory({"/HIV_0000000009": fake_response_factory({'error': 'x'})})
    with pytest.raises(ValueError, match="no 'value' list"):
        GHOClient(BASE_URL, session=session).get_indicator("HIV_0000000009")


def test_http_error_raises_data_source_error(fake_session_factory, fake_response_factory):
    session = fake_session_factory({"/HIV_0000000009": fake_response_factory(status_code=503)})
    with pytest.raises(DataSourceError) as excinfo:
        GHOClient(BASE_URL, session=session).get_indicator("HIV_0000000009")
    assert excinfo.value.status_code == 503


def test_tidy_indicator(gho_records):
    tidy = tidy_indicator(gho_records)

    assert list(tidy.columns) == ['country_code', 'region_code', 'region', 'year', 'dim1',
                                  'value', 'low', 'high']
    # region aggregate and the "No data" row are dropped
    assert len(tidy) == 4 * 6 * 6
    assert 'XX0' not in set(tidy['country_code'])
    assert str(tidy['year'].dtype) == 'Int64'
    assert tidy['value'].dtype == 'float64'


def test_tidy_indicator_empty():
    tidy = tidy_indicator([])
    assert tidy.empty
    assert 'country_code' in tidy.columns


def test_load_art_coverage_joins_country_names(gho_session):
    cfg = {'data': {'who_gho': {'base_url': BASE_URL, 'art_coverage_indicator': 'HIV_0000000009'}}}
    coverage = load_art_coverage(cfg, client=GHOClient(BASE_URL, session=gho_session))

    assert coverage['country'].notna().all()
    row = coverage[coverage['country_code'] == 'AF0'].iloc[0]
    assert row['country'] == 'Country AF0'
    assert row['region'] == 'Africa'


def test_snapshot_round_trip(tmp_path, gho_records):
    cfg = {'data': {'who_gho': {'art_coverage_indicator': 'HIV_0000000009'}}}
    path = snapshot_path(cfg, tmp_path)
    assert path == tmp_path / "who_gho" / "HIV_0000000009.parquet"

    path.parent.mkdir(parents=True)
    tidy_indicator(gho_records).to_parquet(path, index=False)
    assert len(load_snapshot(path)) == 4 * 6 * 6


def test_load_snapshot_missing(tmp_path):
    with pytest.raises(FileNotFoundError, match="fetch_datasets"):
        load_snapshot(tmp_path / "missing.parquet")
