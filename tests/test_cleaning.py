import numpy as np
import pandas as pd
import pytest

from health_eda.data.cleaning import (
    drop_missing,
    recode_binary,
    recode_levels,
    rename_columns,
    to_long,
)


def test_rename_columns_ignores_absent_keys():
    df = pd.DataFrame({'RIDAGEYR': [30], 'other': [1]})
    out = rename_columns(df, {'RIDAGEYR': 'age', 'INDFMPIR': 'poverty_ratio'})
    assert list(out.columns) == ['age', 'other']
    assert list(df.columns) == ['RIDAGEYR', 'other']


def test_recode_levels_unmapped_become_nan():
    df = pd.DataFrame({'code': [1, 2, 3]})
    out = recode_levels(df, 'code', {1: 'male', 2: 'female'})
    assert out['code'].iloc[0] == 'male'
    assert pd.isna(out['code'].iloc[2])


def test_recode_levels_ordered_sets_categories():
    df = pd.DataFrame({'race': [4, 3, 1]})
    out = recode_levels(df, 'race', {1: 'mexican_american', 3: 'nh_white', 4: 'nh_black'},
                        ordered=['nh_white', 'mexican_american', 'nh_black'])
    assert list(out['race'].cat.categories) == ['nh_white', 'mexican_american', 'nh_black']


def test_recode_levels_missing_column():
    with pytest.raises(ValueError, match="Column not found"):
        recode_levels(pd.DataFrame({'a': [1]}), 'b', {})


def test_recode_binary():
    df = pd.DataFrame({'gender': ['Female', 'male ', None], 'married': ['yes', 'no', 'yes']})
    out = recode_binary(df, ['gender', 'married'], {'gender': 'female', 'married': 'yes'})
    assert out['gender'].iloc[0] == 1
    assert out['gender'].iloc[1] == 0
    assert pd.isna(out['gender'].iloc[2])
    assert out['married'].tolist() == [1, 0, 1]


def test_recode_binary_requires_positive_level():
    with pytest.raises(ValueError):
        recode_binary(pd.DataFrame({'x': ['a']}), ['x'], {})


def test_drop_missing_resets_index():
    df = pd.DataFrame({'a': [1.0, np.nan, 3.0], 'b': [1, 2, None]})
    out = drop_missing(df, subset=['a'])
    assert len(out) == 2
    assert list(out.index) == [0, 1]
    assert len(drop_missing(df)) == 1


def test_to_long_row_count_and_order():
    wide = pd.DataFrame({'month': [2, 1], 'male': [10, 20], 'female': [5, 8]})
    long = to_long(wide, id_vars=['month'], value_vars=['male', 'female'],
                   var_name='sex', value_name='deaths')
    assert len(long) == 4
    assert long['month'].tolist() == [1, 1, 2, 2]
    assert long.loc[(long['month'] == 1) & (long['sex'] == 'male'), 'deaths'].item() == 20


def test_to_long_missing_columns():
    with pytest.raises(ValueError, match="Columns not found"):
        to_long(pd.DataFrame({'a': [1]}), id_vars=['a'], value_vars=['b'])
