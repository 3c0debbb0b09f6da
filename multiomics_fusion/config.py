"""
config.py
---------
Locked hyperparameters for graph construction, fusion and clustering, and
the FusionConfig object that carries them through the pipeline.

Defaults follow Wang et al. 2014 (K=20, t=20, mu=0.5); k=3 matches the
reference subtype count.
"""

from dataclasses import dataclass, replace
from typing import Optional

from multiomics_fusion.errors import InputValidationError

# ──────────────────────────────────────────────────────────────────────────────
# Locked defaults
# ──────────────────────────────────────────────────────────────────────────────
K_NEIGHBOURS  = 20      # k-NN neighbourhood for kernel bandwidth + local kernel
T_ITERATIONS  = 20      # fusion diffusion steps
MU            = 0.5     # affinity bandwidth multiplier
N_CLUSTERS    = 3       # reference subtype count
N_SEEDS       = 10      # spectral stability seeds
N_INIT        = 10      # k-means restarts inside spectral partitioning
K_RANGE       = range(2, 11)   # k values evaluated by the eigengap heuristic

AFFINITY_METRICS = ("euclidean", "cosine")
INTEGRATIONS     = ("snf", "average")
CLUSTERERS       = ("pam", "spectral")

# One-at-a-time sensitivity sweep (reference values above)
K_VALUES      = (10, 15, 20, 25)
T_VALUES      = (10, 20, 30)
METRIC_VALUES = AFFINITY_METRICS


@dataclass(frozen=True)
class FusionConfig:
    """Hyperparameters for one pipeline run."""

    k_neighbours: int = K_NEIGHBOURS
    t_iterations: int = T_ITERATIONS
    mu: float = MU
    n_clusters: int = N_CLUSTERS
    metric: str = "euclidean"
    tol: Optional[float] = None     # early-stop tolerance for network fusion
    seed: int = 0
    n_init: int = N_INIT
    max_swaps: Optional[int] = None  # PAM cap; None means k·n

    def __post_init__(self):
        if self.k_neighbours < 1:
            raise InputValidationError(
                f"k_neighbours must be >= 1, got {self.k_neighbours}")
        if self.t_iterations < 1:
            raise InputValidationError(
                f"t_iterations must be >= 1, got {self.t_iterations}")
        if not self.mu > 0:
            raise InputValidationError(f"mu must be > 0, got {self.mu}")
        if self.n_clusters < 1:
            raise InputValidationError(
                f"n_clusters must be >= 1, got {self.n_clusters}")
        if self.metric not in AFFINITY_METRICS:
            raise InputValidationError(
                f"Unknown metric: {self.metric!r} "
                f"(expected one of {AFFINITY_METRICS})")
        if self.tol is not None and self.tol <= 0:
            raise InputValidationError(f"tol must be > 0, got {self.tol}")
        if self.n_init < 1:
            raise InputValidationError(f"n_init must be >= 1, got {self.n_init}")
        if self.max_swaps is not None and self.max_swaps < 1:
            raise InputValidationError(
                f"max_swaps must be >= 1, got {self.max_swaps}")

    def replace(self, **overrides) -> "FusionConfig":
        """Return a copy with the given fields changed (re-validated)."""
        return replace(self, **overrides)

    def describe(self) -> str:
        return (f"K={self.k_neighbours}, t={self.t_iterations}, "
                f"mu={self.mu}, k={self.n_clusters}, metric={self.metric}")
