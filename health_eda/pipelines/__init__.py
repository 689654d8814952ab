"""
Pipelines - one end-to-end runner per write-up.

Each module exposes `NAME` and `run(config, output_dir, ...)`, which loads
the data (unless a frame is passed in), runs the analysis, saves figures and
writes `report.md` + `results.json` to `output_dir`.
"""

from health_eda.pipelines import (
    asthma_mortality,
    heavy_metals,
    hiv_art_coverage,
    medicaid_visits,
)

PIPELINES = {
    medicaid_visits.NAME: medicaid_visits.run,
    asthma_mortality.NAME: asthma_mortality.run,
    heavy_metals.NAME: heavy_metals.run,
    hiv_art_coverage.NAME: hiv_art_coverage.run,
}

__all__ = ['PIPELINES', 'asthma_mortality', 'heavy_metals', 'hiv_art_coverage', 'medicaid_visits']
