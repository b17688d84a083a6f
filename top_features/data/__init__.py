"""Dataset container and grouping validation."""

from .feature_dataset import FeatureDataset, validate_group_labels

__all__ = ["FeatureDataset", "validate_group_labels"]
