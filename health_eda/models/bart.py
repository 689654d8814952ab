"""
Bayesian Additive Regression Trees (PyMC + pymc-bart)

Model:
    y_i ~ Normal(mu(x_i), sigma)
    mu  ~ BART(m trees, alpha, beta)
    sigma ~ HalfNormal(sd(y))

Predictions are the posterior mean of mu at new X, obtained by swapping the
data container and drawing from the posterior predictive of mu.
"""
import numpy as np
from typing import Dict, Optional

import pymc as pm
import pymc_bart as pmb

from health_eda.models.base import BaseModel
from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)


class BARTModel(BaseModel):
    """BART regression with posterior-mean predictions."""

    def __init__(self, config: Optional[Dict] = None, name: str = "bart"):
        super().__init__(name=name, config=config)

        cfg = config or {}
        self.m = cfg.get('m', 50)
        self.alpha = cfg.get('alpha', 0.95)
        self.beta = cfg.get('beta', 2.0)
        self.draws = cfg.get('draws', 1000)
        self.tune = cfg.get('tune', 1000)
        self.chains = cfg.get('chains', 2)
        self.random_state = cfg.get('random_state', 42)

        self.pm_model: Optional[pm.Model] = None
        self.idata = None

    def fit(self, X: np.ndarray, y: np.ndarray) -> 'BARTModel':
        """Sample the BART posterior."""
        X = np.nan_to_num(np.asarray(X, dtype=np.float64), nan=0.0)
        y = np.asarray(y, dtype=np.float64)

        with pm.Model() as model:
            X_data = pm.Data("X", X)
            mu = pmb.BART("mu", X_data, y, m=self.m, alpha=self.alpha, beta=self.beta)
            sigma = pm.HalfNormal("sigma", sigma=float(np.std(y)) or 1.0)
            pm.Normal("y", mu=mu, sigma=sigma, observed=y, shape=mu.shape)

            self.idata = pm.sample(
                draws=self.draws,
                tune=self.tune,
                chains=self.chains,
                cores=1,
                random_seed=self.random_state,
                progressbar=False,
                compute_convergence_checks=False,
            )

        self.pm_model = model
        self.is_fitted = True
        logger.info(f"BART: {self.chains} chains x {self.draws} draws, m={self.m}")
        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Posterior mean of mu(X)."""
        self._check_fitted()
        X = np.nan_to_num(np.asarray(X, dtype=np.float64), nan=0.0)

        with self.pm_model:
            pm.set_data({"X": X})
            ppc = pm.sample_posterior_predictive(
                self.idata,
                var_names=["mu"],
                random_seed=self.random_state,
                progressbar=False,
            )
        draws = ppc.posterior_predictive["mu"]
        return draws.mean(dim=("chain", "draw")).to_numpy()
