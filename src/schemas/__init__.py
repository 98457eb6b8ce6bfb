"""Schema package for model descriptors and reranking results."""

from .models import ModelArchitecture, ModelDescriptor, OutputShape
from .results import ScoredCandidate

__all__ = ["ModelArchitecture", "ModelDescriptor", "OutputShape", "ScoredCandidate"]
