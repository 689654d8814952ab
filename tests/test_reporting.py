import json
import logging
from datetime import datetime

import numpy as np
import pandas as pd

from health_eda.common.logging_utils import configure_from_config, get_logger, setup_logger
from health_eda.common.serialization import save_json, to_serializable
from health_eda.reporting.report import Report


def test_report_writes_markdown_and_json(tmp_path):
    fig = tmp_path / "figures" / "plot.png"
    fig.parent.mkdir()
    fig.write_bytes(b"png")

    report = (
        Report("Test write-up")
        .add_heading("Section")
        .add_text("  Some prose.  ")
        .add_table(pd.DataFrame({'mse': [1.23456]}, index=['tree']), caption="Results")
        .add_figure(fig, "A figure")
        .add_metrics('best_model', 'tree')
        .add_metrics('scores', np.array([1.0, np.nan]))
    )
    md_path = report.write(tmp_path)

    text = md_path.read_text()
    assert text.startswith("# Test write-up")
    assert "## Section" in text
    assert "Some prose." in text
    assert "**Results**" in text
    assert "1.235" in text
    assert "![A figure](figures/plot.png)" in text

    payload = json.loads((tmp_path / "results.json").read_text())
    assert payload['title'] == "Test write-up"
    assert payload['metrics'] == {'best_model': 'tree', 'scores': [1.0, None]}


def test_to_serializable_handles_numpy_and_pandas(tmp_path):
    frame = pd.DataFrame({'a': pd.array([1, None], dtype='Int64'), 'b': ['x', 'y']})
    payload = {
        'int': np.int64(3),
        'float': np.float32(0.5),
        'bool': np.bool_(True),
        'inf': float('inf'),
        'frame': frame,
        'series': pd.Series({'k': 1.5}),
        'when': datetime(2024, 1, 2),
        'path': tmp_path,
        'tuple': (1, 2),
    }
    out = to_serializable(payload)

    assert out['int'] == 3 and isinstance(out['int'], int)
    assert out['float'] == 0.5
    assert out['bool'] is True
    assert out['inf'] is None
    assert out['frame'] == [{'a': 1, 'b': 'x'}, {'a': None, 'b': 'y'}]
    assert out['series'] == {'k': 1.5}
    assert out['when'] == "2024-01-02T00:00:00"
    assert out['path'] == str(tmp_path)
    assert out['tuple'] == [1, 2]

    path = save_json(payload, tmp_path / "nested" / "out.json")
    assert json.loads(path.read_text())['int'] == 3


def test_setup_logger_with_file(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    logger = setup_logger("health_eda_test", log_file=str(log_file), level="DEBUG", colorize=False)
    logger.debug("hello")
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    assert "hello" in log_file.read_text()

    # calling again replaces the handlers
    assert len(setup_logger("health_eda_test", colorize=True).handlers) == 1


def test_package_loggers_propagate_to_configured_root():
    root = configure_from_config({'logging': {'level': 'WARNING', 'colorize': False}})
    module_logger = get_logger("health_eda.models.survey")

    assert root.name == "health_eda"
    assert root.level == logging.WARNING
    assert module_logger.handlers == []
    assert module_logger.propagate
