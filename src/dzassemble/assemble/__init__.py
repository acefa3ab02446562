"""Assembly pipeline for turning tile pyramids back into layer images."""

from .descriptor import (
    DescriptorError,
    find_descriptor_files,
    parse_descriptor,
)
from .compositor import (
    LayerCompositor,
    TileMetadataError,
    compose_layer,
)
from .orchestrator import (
    AssembleResult,
    PyramidAssembler,
    run,
)
from .backends import (
    is_vips_available,
    VIPSBackend,
)

__all__ = [
    "DescriptorError",
    "find_descriptor_files",
    "parse_descriptor",
    "LayerCompositor",
    "TileMetadataError",
    "compose_layer",
    "AssembleResult",
    "PyramidAssembler",
    "run",
    "is_vips_available",
    "VIPSBackend",
]
