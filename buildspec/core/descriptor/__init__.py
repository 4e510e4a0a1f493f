from .models import (
    Coordinate,
    Dependency,
    DescriptorFragment,
    ModuleDescriptor,
    Publication,
    RepositoryRef,
    SourceSet,
)
from .loader import LoaderConfig, load, parse_fragment

__all__ = [
    "Coordinate",
    "Dependency",
    "DescriptorFragment",
    "LoaderConfig",
    "ModuleDescriptor",
    "Publication",
    "RepositoryRef",
    "SourceSet",
    "load",
    "parse_fragment",
]
