import numpy as np
import pandas as pd
import pytest

from health_eda.evaluation.rank_tests import (
    kruskal_test,
    pairwise_rank_sum,
    rank_sum_test,
    rank_tests_to_frame,
    signed_rank_test,
)


@pytest.fixture
def three_groups():
    rng = np.random.default_rng(11)
    return pd.DataFrame({
        'value': np.concatenate([rng.normal(0, 1, 30), rng.normal(0.2, 1, 30), rng.normal(5, 1, 30)]),
        'group': np.repeat(['low', 'mid', 'high'], 30),
    })


def test_signed_rank_detects_paired_shift():
    rng = np.random.default_rng(0)
    y = rng.normal(100, 10, 40)
    x = y + 5 + rng.normal(0, 1, 40)

    res = signed_rank_test(x, y, labels=('male', 'female'))
    assert res.test == 'wilcoxon_signed_rank'
    assert res.significant()
    assert res.effect == pytest.approx(5, abs=1)
    assert res.n == {'pairs': 40}
    assert res.effect_label == 'median(male - female)'


def test_signed_rank_statistic_is_positive_rank_sum():
    y = np.array([10.0, 20.0, 30.0, 40.0, 50.0])
    x = y + np.array([3.0, -1.0, 2.0, 4.0, -5.0])

    # ranks of |d|: 3, 1, 2, 4, 5; positive ranks sum to 3 + 2 + 4
    assert signed_rank_test(x, y).statistic == 9.0
    assert signed_rank_test(y, x).statistic == 6.0
    assert signed_rank_test(x, y, alternative='greater').statistic == 9.0


def test_signed_rank_drops_incomplete_pairs():
    x = [1.0, 2.0, np.nan, 4.0, 5.0, 6.0]
    y = [0.5, 1.0, 1.0, np.nan, 3.0, 2.0]
    assert signed_rank_test(x, y).n['pairs'] == 4


def test_signed_rank_rejects_bad_input():
    with pytest.raises(ValueError, match="same length"):
        signed_rank_test([1, 2], [1, 2, 3])
    with pytest.raises(ValueError, match="No complete pairs"):
        signed_rank_test([np.nan], [1.0])


def test_rank_sum_hodges_lehmann_shift():
    x = np.arange(20, dtype=float) + 10
    y = np.arange(20, dtype=float)
    res = rank_sum_test(x, y, labels=('winter', 'summer'))
    assert res.effect == pytest.approx(10)
    assert res.p_value < 0.01
    assert res.n == {'winter': 20, 'summer': 20}


def test_rank_sum_one_sided():
    x = np.arange(10, dtype=float)
    y = np.arange(10, dtype=float) + 100
    assert rank_sum_test(x, y, alternative='greater').p_value > 0.99
    assert rank_sum_test(x, y, alternative='less').p_value < 0.001


def test_rank_sum_empty_sample():
    with pytest.raises(ValueError, match="empty"):
        rank_sum_test([np.nan, np.nan], [1.0, 2.0], labels=('a', 'b'))


def test_kruskal(three_groups):
    res = kruskal_test(three_groups, 'value', 'group')
    assert res.test == 'kruskal_wallis'
    assert res.p_value < 1e-6
    assert 0 < res.effect <= 1
    assert res.n == {'high': 30, 'low': 30, 'mid': 30}


def test_kruskal_needs_two_groups():
    df = pd.DataFrame({'value': [1.0, 2.0], 'group': ['a', 'a']})
    with pytest.raises(ValueError, match="at least two"):
        kruskal_test(df, 'value', 'group')


def test_pairwise_rank_sum_holm(three_groups):
    table = pairwise_rank_sum(three_groups, 'value', 'group', levels=['low', 'mid', 'high'])

    assert len(table) == 3
    assert list(table[['group_a', 'group_b']].itertuples(index=False, name=None)) == [
        ('low', 'mid'), ('low', 'high'), ('mid', 'high')
    ]
    assert (table['p_adjusted'] >= table['p_value']).all()
    separated = table[table['group_b'] == 'high']
    assert (separated['p_adjusted'] < 0.001).all()


def test_pairwise_rank_sum_single_level():
    df = pd.DataFrame({'value': [1.0, 2.0], 'group': ['a', 'a']})
    table = pairwise_rank_sum(df, 'value', 'group')
    assert table.empty
    assert 'p_adjusted' in table.columns


def test_rank_tests_to_frame(three_groups):
    results = {
        'groups': kruskal_test(three_groups, 'value', 'group'),
        'low_vs_high': rank_sum_test(three_groups.loc[three_groups['group'] == 'low', 'value'],
                                     three_groups.loc[three_groups['group'] == 'high', 'value']),
    }
    frame = rank_tests_to_frame(results)
    assert frame['comparison'].tolist() == ['groups', 'low_vs_high']
    assert {'statistic', 'p_value', 'effect', 'n'} <= set(frame.columns)
    assert results['groups'].to_dict()['test'] == 'kruskal_wallis'
