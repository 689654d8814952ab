"""Data loading and cleaning for the write-ups."""

from health_eda.data.sources import (
    DataSourceError,
    build_session,
    session_from_config,
    fetch_json,
    download_file,
    fetch_rdataset
)

from health_eda.data.cleaning import (
    rename_columns,
    recode_levels,
    recode_binary,
    drop_missing,
    to_long
)

__all__ = [
    # Sources
    'DataSourceError',
    'build_session',
    'session_from_config',
    'fetch_json',
    'download_file',
    'fetch_rdataset',
    # Cleaning
    'rename_columns',
    'recode_levels',
    'recode_binary',
    'drop_missing',
    'to_long'
]
