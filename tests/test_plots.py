import numpy as np
import pandas as pd
import pytest

from health_eda.models.trees import DecisionTreeModel
from health_eda.visualization import plots


def _is_png(path):
    return path.exists() and path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_plot_tree_structure(tmp_path):
    rng = np.random.default_rng(0)
    X = rng.normal(size=(50, 2))
    model = DecisionTreeModel({'max_depth': 3}).fit(X, X[:, 0] * 2)
    out = plots.plot_tree_structure(model.model, ['age', 'income'], tmp_path / "tree.png")
    assert _is_png(out)


def test_plot_feature_importance_and_mse(tmp_path):
    importance = {'health1': 0.5, 'access': 0.3, 'age': 0.2}
    assert _is_png(plots.plot_feature_importance(importance, tmp_path / "imp.png", top_n=2))

    comparison = pd.DataFrame({'mse': [3.0, 2.0]}, index=['tree', 'forest'])
    assert _is_png(plots.plot_test_mse(comparison, tmp_path / "mse.png", null_mse=4.0))


def test_plot_predicted_vs_observed(tmp_path):
    out = plots.plot_predicted_vs_observed([1, 2, 3], [1.1, 1.9, 3.2], tmp_path / "sub" / "pvo.png")
    assert _is_png(out)


def test_plot_series_and_boxes(tmp_path, lung_wide):
    from health_eda.data.lung_deaths import add_season, deaths_long

    long = deaths_long(add_season(lung_wide))
    assert _is_png(plots.plot_time_series_by_group(long, 'date', 'deaths', 'sex', tmp_path / "ts.png"))
    assert _is_png(plots.plot_box_by_group(long, 'deaths', 'season', tmp_path / "box.png", hue='sex'))
    assert _is_png(plots.plot_box_by_group(lung_wide, 'total', 'month', tmp_path / "box2.png"))


def test_plot_coefficients_drops_intercept(tmp_path):
    coefficients = pd.DataFrame({
        'estimate': [1.0, 0.2, -0.1],
        'ci_low': [0.8, 0.1, -0.3],
        'ci_high': [1.2, 0.3, 0.1],
    }, index=['Intercept', 'age', 'C(sex)[T.female]'])
    out = plots.plot_coefficients(coefficients, tmp_path / "coef.png", transform=np.exp, reference=1.0)
    assert _is_png(out)


@pytest.mark.parametrize('with_band', [True, False])
def test_plot_trends_by_region(tmp_path, with_band):
    summary = pd.DataFrame({
        'region': np.repeat(['Africa', 'Europe'], 3),
        'year': pd.array([2010, 2011, 2012] * 2, dtype='Int64'),
        'median': [20.0, 25.0, 30.0, 50.0, 55.0, 60.0],
    })
    if with_band:
        summary['q25'] = summary['median'] - 5
        summary['q75'] = summary['median'] + 5
    assert _is_png(plots.plot_trends_by_region(summary, tmp_path / "trend.png"))
