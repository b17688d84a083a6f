"""
Central configuration for the top-features ranking library.
"""

# --- Statistic Parameters ---

# Default test statistic used to score each feature.
# Options: 'linear', 'linclass', 'fast_linear', 'diaglinear', 'svm',
# 'svm_linear', 'ttest', 'tstat', 'ustat', 'ranksum', 'ustat_exact' (or 'ustatExact'),
# 'ranksum_exact' (or 'ranksumExact')
DEFAULT_STATISTIC: str = "fast_linear"

# Number of top features listed, reported and clustered.
NUM_TOP_FEATURES: int = 40

# --- Null Distribution Parameters ---

# Number of label-shuffled rounds pooled into the null distribution.
# Each round scores every feature once, so the pool holds
# NUM_NULLS * n_features values. 0 disables null estimation.
NUM_NULLS: int = 0

# Significance level (FDR) used when reporting significant features.
SIGNIFICANCE_ALPHA: float = 0.05

# --- Scoring Parameters ---

# Number of features scored and timed before projecting the duration of a
# full ranking pass. None disables the projection.
CALIBRATION_WINDOW: int | None = 100

# Number of feature columns handed to each parallel job.
SCORING_BATCH_SIZE: int = 64

# --- Redundancy Clustering Parameters ---

# Dissimilarity cut applied to the average-linkage dendrogram of the top
# features. This is a distance, not a cluster count.
CLUSTER_THRESHOLD: float = 0.2

# Dissimilarity between feature vectors.
# Options: 'abscorr' (1 - |r|), 'corr' (1 - r), 'spearman', 'absspearman',
# or any scipy.spatial.distance.pdist metric name
DISTANCE_METRIC: str = "abscorr"

# Linkage method for the redundancy dendrogram.
LINKAGE_METHOD: str = "average"
