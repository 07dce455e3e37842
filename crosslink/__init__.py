from crosslink.builder import detect_relationships, detect_relationships_async, detect_relationships_parallel
from crosslink.config import DetectionConfig
from crosslink.detector import analyze_column_pair
from crosslink.errors import CrossLinkUserError, DetectionCancelled
from crosslink.join import join_datasets
from crosslink.models.dataset import Dataset, Relationship, RelationshipType
from crosslink.models.sinks import Sink
from crosslink.models.sources import Source
from crosslink.profiler import assess_quality, profile_column, profile_dataset
from crosslink.similarity import similarity
from crosslink.workspace import Workspace

__all__ = [
    "CrossLinkUserError",
    "Dataset",
    "DetectionCancelled",
    "DetectionConfig",
    "Relationship",
    "RelationshipType",
    "Sink",
    "Source",
    "Workspace",
    "analyze_column_pair",
    "assess_quality",
    "detect_relationships",
    "detect_relationships_async",
    "detect_relationships_parallel",
    "join_datasets",
    "profile_column",
    "profile_dataset",
    "similarity",
]
