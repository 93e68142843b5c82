"""
PURPOSE: Closed set of price distribution families with fit, sample and log-density.

RESPONSIBILITIES:
- Enumerate the supported families (LogNormal, Gamma, Normal, Exponential)
- Maximum-likelihood parameter estimation per family
- Sampling per family from an explicit numpy Generator, clipped to non-negative support
- Log-density per family via scipy.stats
- Single responsibility: per-family math only, no model selection or aggregation

Parameter conventions:
    LogNormal   (mu, sigma)   mu/sigma of log(x), sigma > 0
    Gamma       (shape, scale)
    Normal      (mean, std)
    Exponential (scale,)      scale is the mean
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Tuple

import numpy as np
from scipy.stats import expon, gamma, lognorm, norm

Params = Tuple[float, ...]


class DistributionKind(str, Enum):
    # Declaration order is the tie-break order used by model selection.
    LOGNORMAL = "LogNormal"
    GAMMA = "Gamma"
    NORMAL = "Normal"
    EXPONENTIAL = "Exponential"


@dataclass(frozen=True)
class DistributionFamily:
    """Dispatch entry for one distribution family."""
    kind: DistributionKind
    num_params: int
    fit: Callable[[np.ndarray], Params]
    sample: Callable[[np.random.Generator, Params, int], np.ndarray]
    logpdf: Callable[[np.ndarray, Params], np.ndarray]


def _fit_lognormal(data: np.ndarray) -> Params:
    logs = np.log(data)
    return float(np.mean(logs)), float(np.std(logs))


def _fit_gamma(data: np.ndarray) -> Params:
    shape, _, scale = gamma.fit(data, floc=0)
    return float(shape), float(scale)


def _fit_normal(data: np.ndarray) -> Params:
    return float(np.mean(data)), float(np.std(data))


def _fit_exponential(data: np.ndarray) -> Params:
    return (float(np.mean(data)),)


def _sample_lognormal(rng: np.random.Generator, params: Params, size: int) -> np.ndarray:
    mu, sigma = params
    return rng.lognormal(mean=mu, sigma=sigma, size=size)


def _sample_gamma(rng: np.random.Generator, params: Params, size: int) -> np.ndarray:
    shape, scale = params
    return rng.gamma(shape=shape, scale=scale, size=size)


def _sample_normal(rng: np.random.Generator, params: Params, size: int) -> np.ndarray:
    mean, std = params
    # Truncate at zero, same as consumption draws.
    return np.maximum(rng.normal(loc=mean, scale=std, size=size), 0.0)


def _sample_exponential(rng: np.random.Generator, params: Params, size: int) -> np.ndarray:
    (scale,) = params
    return rng.exponential(scale=scale, size=size)


def _logpdf_lognormal(data: np.ndarray, params: Params) -> np.ndarray:
    mu, sigma = params
    return lognorm.logpdf(data, s=sigma, scale=math.exp(mu))


def _logpdf_gamma(data: np.ndarray, params: Params) -> np.ndarray:
    shape, scale = params
    return gamma.logpdf(data, a=shape, scale=scale)


def _logpdf_normal(data: np.ndarray, params: Params) -> np.ndarray:
    mean, std = params
    return norm.logpdf(data, loc=mean, scale=std)


def _logpdf_exponential(data: np.ndarray, params: Params) -> np.ndarray:
    (scale,) = params
    return expon.logpdf(data, scale=scale)


FAMILIES: Dict[DistributionKind, DistributionFamily] = {
    DistributionKind.LOGNORMAL: DistributionFamily(
        DistributionKind.LOGNORMAL, 2, _fit_lognormal, _sample_lognormal, _logpdf_lognormal
    ),
    DistributionKind.GAMMA: DistributionFamily(
        DistributionKind.GAMMA, 2, _fit_gamma, _sample_gamma, _logpdf_gamma
    ),
    DistributionKind.NORMAL: DistributionFamily(
        DistributionKind.NORMAL, 2, _fit_normal, _sample_normal, _logpdf_normal
    ),
    DistributionKind.EXPONENTIAL: DistributionFamily(
        DistributionKind.EXPONENTIAL, 1, _fit_exponential, _sample_exponential, _logpdf_exponential
    ),
}


def get_family(kind) -> DistributionFamily:
    """Look up the dispatch entry for a kind (enum member or its string value)."""
    return FAMILIES[DistributionKind(kind)]


def validate_params(kind, params) -> Params:
    """
    Check that params are valid for the family and return them as a float tuple.

    Args:
        kind: DistributionKind or its string value
        params: Sequence of 1-2 floats in the family's convention

    Returns:
        tuple of floats

    Raises:
        ValueError: If the count is wrong, a value is non-finite, or a scale/shape
            parameter is not positive
    """
    family = get_family(kind)
    values = tuple(float(p) for p in params)
    if len(values) != family.num_params:
        raise ValueError(
            f"{family.kind.value} expects {family.num_params} parameter(s), got {len(values)}"
        )
    if not all(math.isfinite(v) for v in values):
        raise ValueError(f"{family.kind.value} parameters must be finite, got {values}")

    if family.kind is DistributionKind.LOGNORMAL:
        positive = values[1:]
    elif family.kind is DistributionKind.NORMAL:
        if values[0] < 0:
            raise ValueError(f"Normal price mean must be non-negative, got {values[0]}")
        positive = values[1:]
    else:
        positive = values
    if any(v <= 0 for v in positive):
        raise ValueError(f"{family.kind.value} scale/shape parameters must be positive, got {values}")
    return values


def sample_prices(kind, params: Params, rng: np.random.Generator, size: int = 1) -> np.ndarray:
    """Draw `size` non-negative unit prices from the given family."""
    return get_family(kind).sample(rng, params, size)


def log_likelihood(kind, params: Params, data: np.ndarray) -> float:
    """Total log-likelihood of data under the family; may be -inf or nan."""
    return float(np.sum(get_family(kind).logpdf(np.asarray(data, dtype=float), params)))
