# Public-health exploratory write-ups
"""
Exploratory data-analysis write-ups on public-health datasets.

Project Structure:
    health_eda/
    ├── common/        - Logging, paths, JSON serialization
    ├── data/          - Loaders (R sample data, NHANES, WHO GHO) and cleaning
    ├── features/      - Feature sets and design matrices
    ├── models/        - Trees, forests, boosting, BART, survey-weighted GLMs
    ├── evaluation/    - Train/test split, test MSE, rank tests
    ├── visualization/ - Plotting utilities
    ├── reporting/     - Markdown write-up + JSON results
    └── pipelines/     - One module per write-up (load → clean → fit → report)
"""

__version__ = "0.1.0"
__author__ = "Health EDA Team"
