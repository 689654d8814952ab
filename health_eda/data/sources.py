"""
Remote data access for the write-ups.

Three kinds of sources are read:
1. R sample datasets (Rdatasets mirror, via statsmodels) - cached on disk
2. Static files (NHANES XPT transport files) - downloaded once into the cache
3. JSON APIs (WHO Global Health Observatory)

All failures surface as DataSourceError; nothing is retried beyond the
urllib3 Retry policy mounted on the session.
"""
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from statsmodels.datasets import get_rdataset

from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 60


class DataSourceError(RuntimeError):
    """A download or API call failed."""

    def __init__(self, message: str, source_url: str, status_code: Optional[int] = None):
        self.source_url = source_url
        self.status_code = status_code
        super().__init__(message)


def build_session(retries: int = 3, backoff_factor: float = 0.5) -> requests.Session:
    """
    Create a requests session with retry on transient HTTP errors.

    Args:
        retries: Total retry attempts per request
        backoff_factor: Exponential backoff factor between attempts

    Returns:
        Configured session
    """
    retry = Retry(
        total=retries,
        backoff_factor=backoff_factor,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET", "HEAD"),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"User-Agent": "health-eda/0.1"})
    return session


def session_from_config(config: Dict[str, Any]) -> requests.Session:
    http_cfg = config.get('http', {}) or {}
    return build_session(
        retries=http_cfg.get('retries', 3),
        backoff_factor=http_cfg.get('backoff_factor', 0.5),
    )


def fetch_json(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT
) -> Any:
    """
    GET a URL and decode the JSON body.

    Raises:
        DataSourceError: on connection failure, non-2xx status, or invalid JSON
    """
    session = session or build_session()
    try:
        response = session.get(url, params=params, timeout=timeout)
    except requests.RequestException as e:
        raise DataSourceError(f"Request failed for {url}: {e}", source_url=url) from e

    if not response.ok:
        raise DataSourceError(
            f"HTTP {response.status_code} from {url}",
            source_url=url,
            status_code=response.status_code,
        )

    try:
        return response.json()
    except ValueError as e:
        raise DataSourceError(f"Invalid JSON from {url}", source_url=url) from e


def download_file(
    url: str,
    target_path: Path,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
    overwrite: bool = False
) -> Path:
    """
    Download `url` to `target_path`, skipping the request if the file exists.

    The body is streamed to a `.part` file and renamed on success so an
    interrupted download never leaves a truncated file in the cache.
    """
    target_path = Path(target_path)
    if target_path.exists() and not overwrite:
        logger.debug(f"Using cached {target_path.name}")
        return target_path

    target_path.parent.mkdir(parents=True, exist_ok=True)
    partial = target_path.with_suffix(target_path.suffix + ".part")
    session = session or build_session()

    logger.info(f"Downloading {url}")
    try:
        with session.get(url, stream=True, timeout=timeout) as response:
            if not response.ok:
                raise DataSourceError(
                    f"HTTP {response.status_code} from {url}",
                    source_url=url,
                    status_code=response.status_code,
                )
            with open(partial, 'wb') as f:
                for chunk in response.iter_content(chunk_size=1 << 16):
                    if chunk:
                        f.write(chunk)
    except requests.RequestException as e:
        partial.unlink(missing_ok=True)
        raise DataSourceError(f"Download failed for {url}: {e}", source_url=url) from e

    partial.replace(target_path)
    logger.info(f"  → Saved {target_path.name} ({target_path.stat().st_size} bytes)")
    return target_path


def fetch_rdataset(item: str, package: str, cache_dir: Optional[Path] = None) -> pd.DataFrame:
    """
    Load an R sample dataset from the Rdatasets mirror.

    Args:
        item: Dataset name (e.g., "Medicaid1986")
        package: R package that ships it (e.g., "AER")
        cache_dir: Directory for statsmodels' download cache

    Returns:
        The dataset as a DataFrame
    """
    cache = str(cache_dir) if cache_dir is not None else True
    source = f"Rdatasets {package}::{item}"
    try:
        dataset = get_rdataset(item, package, cache=cache)
    except (OSError, ValueError) as e:
        # urllib's HTTPError/URLError are OSError subclasses
        raise DataSourceError(f"Could not load {source}: {e}", source_url=source) from e

    df = dataset.data
    logger.info(f"Loaded {source}: {len(df)} rows, {len(df.columns)} columns")
    return df
