from .annotation_baker import AnnotationBaker
from .background_sampler import BackgroundSampler
from .replacement_engine import ReplacementEngine

__all__ = ["AnnotationBaker", "BackgroundSampler", "ReplacementEngine"]
