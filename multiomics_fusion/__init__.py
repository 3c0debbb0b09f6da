"""
Multi-omics similarity network fusion and clustering comparison.

Per-modality affinity graphs → fusion (SNF or averaging) → medoid or
spectral partitioning → Rand / ARI / NMI against a reference labeling.
"""

from multiomics_fusion.affinity import affinity_matrix, build_affinities
from multiomics_fusion.agreement import (AgreementScore, adjusted_rand_index,
                                         normalized_mutual_info, rand_index,
                                         score_agreement)
from multiomics_fusion.clustering import (ClusterAssignment, assign_clusters,
                                          eigengap_k, estimate_n_clusters,
                                          pam_clustering, spectral_clustering)
from multiomics_fusion.config import FusionConfig
from multiomics_fusion.errors import (ConvergenceError, DegenerateGraphError,
                                      FusionPipelineError, InputValidationError)
from multiomics_fusion.fusion import (average_fusion, fuse, global_kernel,
                                      local_kernel, network_fusion)
from multiomics_fusion.matrices import (FeatureMatrix, ReferenceLabels,
                                        align_modalities, check_alignment)
from multiomics_fusion.pipeline import (ComparisonResult, compare_methods,
                                        sensitivity_sweep)
from multiomics_fusion.stability import seed_stability

__version__ = "0.1.0"
