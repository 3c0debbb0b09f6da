"""
agreement.py
------------
Agreement between a candidate cluster labeling and a reference labeling.

  Rand Index     2(n11 + n00) / (n(n − 1))
  ARI            Rand Index adjusted for chance (Hubert & Arabie)
  NMI            I(X;Y) / sqrt(H(X) · H(Y))

All three are invariant to relabeling. NMI is undefined when either
labeling has a single cluster (zero entropy); it is reported as 0 in
that case.
"""

import logging
from typing import NamedTuple

import numpy as np
from sklearn.metrics import (adjusted_rand_score, normalized_mutual_info_score,
                             rand_score)

from multiomics_fusion.errors import InputValidationError

log = logging.getLogger(__name__)


class AgreementScore(NamedTuple):
    rand: float
    ari: float
    nmi: float


def _check_pair(candidate, reference) -> tuple:
    x = np.asarray(candidate)
    y = np.asarray(reference)
    if x.ndim != 1 or y.ndim != 1:
        raise InputValidationError(
            f"label vectors must be 1-D, got {x.ndim}-D and {y.ndim}-D")
    if x.shape[0] != y.shape[0]:
        raise InputValidationError(
            f"label vectors differ in length: {x.shape[0]} vs {y.shape[0]}")
    if x.shape[0] < 2:
        raise InputValidationError("need at least 2 labelled samples")
    return x, y


def rand_index(candidate, reference) -> float:
    x, y = _check_pair(candidate, reference)
    return float(rand_score(y, x))


def adjusted_rand_index(candidate, reference) -> float:
    x, y = _check_pair(candidate, reference)
    return float(adjusted_rand_score(y, x))


def normalized_mutual_info(candidate, reference) -> float:
    """Geometric-mean NMI; 0 when either labeling has one cluster."""
    x, y = _check_pair(candidate, reference)
    if np.unique(x).size < 2 or np.unique(y).size < 2:
        log.warning("  NMI undefined for a single-cluster labeling — reported as 0")
        return 0.0
    nmi = normalized_mutual_info_score(y, x, average_method="geometric")
    return float(np.clip(nmi, 0.0, 1.0))


def score_agreement(candidate, reference) -> AgreementScore:
    """Rand Index, ARI and NMI of candidate against reference."""
    return AgreementScore(rand=rand_index(candidate, reference),
                          ari=adjusted_rand_index(candidate, reference),
                          nmi=normalized_mutual_info(candidate, reference))
