"""End-to-end runs of every write-up on synthetic data."""
import json

import pandas as pd
import pytest

from health_eda.data.who_gho import tidy_indicator
from health_eda.pipelines import PIPELINES, asthma_mortality, heavy_metals, hiv_art_coverage, medicaid_visits


def _read_results(output_dir):
    assert (output_dir / "report.md").is_file()
    return json.loads((output_dir / "results.json").read_text())['metrics']


def test_registry_names():
    assert set(PIPELINES) == {'medicaid_visits', 'asthma_mortality', 'heavy_metals', 'hiv_art_coverage'}


def test_medicaid_pipeline(tmp_path, config, medicaid_raw):
    metrics = medicaid_visits.run(config, tmp_path, raw=medicaid_raw)

    assert set(metrics['models']) == {'decision_tree', 'bagging', 'random_forest', 'xgboost'}
    assert metrics['n_train'] + metrics['n_test'] == metrics['n_rows'] == len(medicaid_raw)
    assert metrics['null_model_mse'] > 0
    assert metrics['best_model'] in metrics['models']
    assert 'random_forest_oob_mse' in metrics

    figures = {p.name for p in (tmp_path / "figures").iterdir()}
    assert {'test_mse.png', 'decision_tree.png', 'importance_random_forest.png',
            'importance_xgboost.png', 'predicted_vs_observed.png'} <= figures

    saved = _read_results(tmp_path)
    assert saved['best_model'] == metrics['best_model']
    assert "Test MSE" in (tmp_path / "report.md").read_text()


def test_medicaid_pipeline_is_reproducible(tmp_path, config, medicaid_raw):
    config['medicaid']['models'] = {'decision_tree': {'prune': False}}
    first = medicaid_visits.run(config, tmp_path / "a", raw=medicaid_raw)
    second = medicaid_visits.run(config, tmp_path / "b", raw=medicaid_raw)
    assert first['models'] == second['models']


def test_medicaid_report_describes_pruning_setting(tmp_path, config, medicaid_raw):
    medicaid_visits.run(config, tmp_path / "pruned", raw=medicaid_raw)
    pruned = (tmp_path / "pruned" / "report.md").read_text()
    assert "Cost-complexity pruning chose alpha" in pruned
    assert "## Pruned regression tree" in pruned

    config['medicaid']['models'] = {'decision_tree': {'prune': False}}
    medicaid_visits.run(config, tmp_path / "unpruned", raw=medicaid_raw)
    unpruned = (tmp_path / "unpruned" / "report.md").read_text()
    assert "Cost-complexity pruning" not in unpruned
    assert "## Unpruned regression tree" in unpruned
    assert "Pruning is disabled" in unpruned


def test_medicaid_pipeline_needs_a_model(tmp_path, config, medicaid_raw):
    config['medicaid']['models'] = {'xgboost': {'enabled': False}}
    with pytest.raises(ValueError, match="No models enabled"):
        medicaid_visits.run(config, tmp_path, raw=medicaid_raw)


def test_asthma_pipeline(tmp_path, config, lung_wide):
    metrics = asthma_mortality.run(config, tmp_path, wide=lung_wide)

    tests = metrics['tests']
    assert set(tests) == {'male_vs_female', 'winter_vs_summer', 'across_years', 'across_seasons'}
    assert tests['male_vs_female']['p_value'] < 0.001
    assert tests['male_vs_female']['effect'] > 0
    # men outnumber women every month, so every signed rank is positive
    assert tests['male_vs_female']['statistic'] == 72 * 73 / 2
    assert tests['winter_vs_summer']['p_value'] < 0.001
    assert tests['across_seasons']['p_value'] < 0.001
    assert len(metrics['pairwise_seasons']) == 6

    saved = _read_results(tmp_path)
    assert saved['n_months'] == 72
    assert len(list((tmp_path / "figures").glob("*.png"))) == 3


def test_asthma_pipeline_rejects_unknown_season(tmp_path, config, lung_wide):
    config['asthma']['compare_seasons'] = ['winter', 'monsoon']
    with pytest.raises(ValueError, match="compare_seasons"):
        asthma_mortality.run(config, tmp_path, wide=lung_wide)


def test_heavy_metals_pipeline(tmp_path, config, nhanes_panel):
    metrics = heavy_metals.run(config, tmp_path, panel=nhanes_panel)

    design = metrics['design']
    assert design['n_strata'] == 15
    assert design['n_psu'] == 30
    assert design['degrees_of_freedom'] == 15
    assert set(metrics['overall_geometric_means']) == {'lead', 'cadmium', 'mercury'}
    for gm in metrics['overall_geometric_means'].values():
        assert gm['ci_low'] < gm['geometric_mean'] < gm['ci_high']

    lead = metrics['models']['lead']
    assert lead['df_resid'] == 7
    assert set(metrics['by_sex']['lead']['sex']) == {'male', 'female'}

    saved = _read_results(tmp_path)
    assert saved['design']['lonely_psu'] == 'adjust'
    assert (tmp_path / "figures" / "coefficients_mercury.png").is_file()


def test_hiv_pipeline(tmp_path, config, gho_records):
    coverage = tidy_indicator(gho_records).assign(country=lambda d: d['country_code'])
    metrics = hiv_art_coverage.run(config, tmp_path, coverage=coverage)

    assert metrics['n_countries'] == 24
    assert metrics['years'] == {'baseline': 2010, 'latest': 2015}
    assert metrics['tests']['regions_latest_year']['p_value'] < 0.01
    assert metrics['tests']['latest_vs_baseline']['effect'] > 0
    assert len(metrics['pairwise_regions']) == 6

    assert 'year_c' in set(metrics['fractional_logit']['coefficients']['term'])

    saved = _read_results(tmp_path)
    assert len(saved['regional_summary']) == 4 * 6
    assert (tmp_path / "figures" / "coverage_trends_by_region.png").is_file()


def test_hiv_pipeline_year_overrides(tmp_path, config, gho_records):
    coverage = tidy_indicator(gho_records)
    config['hiv_art']['baseline_year'] = 2012
    config['hiv_art']['latest_year'] = 2014
    metrics = hiv_art_coverage.run(config, tmp_path, coverage=coverage)
    assert metrics['years'] == {'baseline': 2012, 'latest': 2014}

    config['hiv_art']['baseline_year'] = 2015
    with pytest.raises(ValueError, match="must precede"):
        hiv_art_coverage.run(config, tmp_path, coverage=coverage)


def test_hiv_clean_coverage_filters_and_clips():
    raw = pd.DataFrame({
        'country_code': ['A', 'A', 'B', 'C'],
        'region': ['Africa', 'Africa', None, 'Europe'],
        'year': pd.array([2010, 2010, 2010, 2011], dtype='Int64'),
        'dim1': [None, 'SEX_MLE', None, None],
        'value': [105.0, 40.0, 30.0, 50.0],
    })
    clean = hiv_art_coverage.clean_coverage(raw)
    assert clean['country_code'].tolist() == ['A', 'C']
    assert clean['coverage'].tolist() == [100.0, 50.0]
