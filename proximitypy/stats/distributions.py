"""
Descriptive and Weibull statistics of nearest-neighbor distances.

The Weibull fit is a maximum-likelihood estimate found with a derivative-free
Nelder-Mead simplex search (scipy.optimize.minimize).
"""

import logging
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

import numpy as np
from scipy.optimize import minimize

from proximitypy.core.errors import WeibullFitError

logger = logging.getLogger(__name__)


@dataclass
class DistanceStatistics:
    """
    Summary of one neighbor-rank distance distribution.

    Parameters
    ----------
    count : int
        Number of distances summarized (cells lacking the neighbor skipped).
    mean, median, std : float
        Descriptive statistics; NaN when ``count`` is 0.
    shape, scale : float
        Weibull parameters (k, lambda); NaN when the fit failed.
    """

    count: int
    mean: float
    median: float
    std: float
    shape: float
    scale: float

    def to_dict(self) -> dict:
        return asdict(self)


def weibull_neg_log_likelihood(params, x: np.ndarray) -> float:
    """
    Negative log-likelihood of the Weibull density.

    Returns +inf for non-positive parameters or negative observations.
    Observations equal to zero use the finite limit ``log(k) - log(lambda)``.
    """
    k, lam = params
    if k <= 0 or lam <= 0:
        return np.inf
    if np.any(x < 0):
        return np.inf

    log_k = np.log(k)
    log_lam = np.log(lam)
    positive = x[x > 0]
    n_zero = len(x) - len(positive)

    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        ratio = positive / lam
        log_pdf = log_k - log_lam + (k - 1.0) * np.log(ratio) - np.power(ratio, k)
        nll = -np.sum(log_pdf) - n_zero * (log_k - log_lam)

    if np.isnan(nll):
        return np.inf
    return float(nll)


def fit_weibull(
    data,
    max_evaluations: int = 10000,
    tolerance: float = 1e-9,
) -> tuple[float, float]:
    """
    Fit a Weibull distribution to non-negative data by maximum likelihood.

    Parameters
    ----------
    data : array-like
        Non-negative observations (distances).
    max_evaluations : int, default=10000
        Maximum number of objective evaluations.
    tolerance : float, default=1e-9
        Absolute tolerance on parameters and objective.

    Returns
    -------
    tuple
        (shape, scale), i.e. (k, lambda).

    Raises
    ------
    WeibullFitError
        Empty input, invalid observations, or no convergence.

    Examples
    --------
    >>> rng = np.random.default_rng(0)
    >>> x = rng.weibull(2.0, 5000) * 5.0
    >>> shape, scale = fit_weibull(x)
    """
    x = np.asarray(data, dtype=np.float64).ravel()
    if len(x) == 0:
        raise WeibullFitError("No data provided")
    if not np.all(np.isfinite(x)) or np.any(x < 0):
        raise WeibullFitError("Weibull fit requires finite, non-negative data")

    mean = float(np.mean(x))
    initial_shape = 1.0
    initial_scale = 1.0 if mean == 0.0 else mean
    x0 = np.array([initial_shape, initial_scale])
    simplex = np.array([x0, x0 + [0.1, 0.0], x0 + [0.0, 0.1]])

    result = minimize(
        weibull_neg_log_likelihood,
        x0,
        args=(x,),
        method="Nelder-Mead",
        options={
            "initial_simplex": simplex,
            "xatol": tolerance,
            "fatol": tolerance,
            "maxfev": max_evaluations,
            "maxiter": max_evaluations,
        },
    )

    shape, scale = (float(v) for v in result.x)
    if not result.success or not np.isfinite(result.fun) or shape <= 0 or scale <= 0:
        raise WeibullFitError(f"Weibull fit did not converge: {result.message}")

    return shape, scale


def descriptive_statistics(values) -> tuple[float, float, float]:
    """
    Mean, median and sample standard deviation.

    Standard deviation is 0.0 for a single value; all three are NaN for none.
    """
    x = np.asarray(values, dtype=np.float64)
    if len(x) == 0:
        return np.nan, np.nan, np.nan
    std = float(np.std(x, ddof=1)) if len(x) > 1 else 0.0
    return float(np.mean(x)), float(np.median(x)), std


def collect_distances(trackers: dict, n: int, subset: Optional[Iterable] = None) -> np.ndarray:
    """Distances to the (n+1)-th nearest neighbor, skipping cells that lack one."""
    if subset is not None:
        subset = set(subset)
        items = (tracker for cell, tracker in trackers.items() if cell in subset)
    else:
        items = trackers.values()
    distances = [tracker.distance_by_n(n) for tracker in items]
    return np.array([d for d in distances if d is not None], dtype=np.float64)


def distance_statistics(
    trackers: dict,
    n: int,
    subset: Optional[Iterable] = None,
    context: str = "",
) -> DistanceStatistics:
    """
    Statistics of the (n+1)-th nearest-neighbor distance.

    A failed Weibull fit is reported as NaN shape/scale and a warning; it
    never interrupts the caller.

    Parameters
    ----------
    trackers : dict
        Target cell -> ``NeighborTracker``.
    n : int
        Zero-based neighbor rank.
    subset : iterable, optional
        Restrict to these target cells.
    context : str, optional
        Included in the warning message (e.g. the object being measured).
    """
    distances = collect_distances(trackers, n, subset)
    mean, median, std = descriptive_statistics(distances)

    try:
        shape, scale = fit_weibull(distances)
    except WeibullFitError as e:
        logger.warning(f"Unable to extract Weibull parameters for {context or f'neighbor #{n + 1}'}: {e}")
        shape, scale = np.nan, np.nan

    return DistanceStatistics(
        count=len(distances),
        mean=mean,
        median=median,
        std=std,
        shape=shape,
        scale=scale,
    )
