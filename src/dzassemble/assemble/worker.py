"""Per-group work unit of the assembly pipeline.

This module exists separately from __main__.py so the worker function stays
importable by process pools on platforms that spawn rather than fork.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from dzassemble.config import ALWAYS_PROCESSED_LAYERS
from dzassemble.core.types import CompositionTarget, Layer, PyramidDescriptor

from .compositor import LayerCompositor
from .descriptor import parse_descriptor

logger = logging.getLogger(__name__)


@dataclass
class GroupResult:
    """Outcome of assembling one descriptor.

    Attributes:
        group_name: Descriptor file name without extension
        written: PNG files written, in layer order
        skipped_layers: Layer indices left out by the layer-skip policy
    """

    group_name: str
    written: list[Path] = field(default_factory=list)
    skipped_layers: list[int] = field(default_factory=list)


def should_process_layer(layer_index: int, enable_lower_layers: bool) -> bool:
    """Apply the layer-skip policy.

    Layers 0 and 1 are always composited; later layers only when lower
    layers are enabled.
    """
    return layer_index < ALWAYS_PROCESSED_LAYERS or enable_lower_layers


def plan_layers(
    descriptor: PyramidDescriptor, enable_lower_layers: bool
) -> tuple[list[tuple[Layer, CompositionTarget]], list[int]]:
    """Split a descriptor's layers into composition targets and skipped indices."""
    planned: list[tuple[Layer, CompositionTarget]] = []
    skipped: list[int] = []
    for layer in descriptor.layers:
        if not should_process_layer(layer.index, enable_lower_layers):
            skipped.append(layer.index)
            continue
        target = CompositionTarget.for_layer(
            descriptor.group_name, layer.index, descriptor.width, descriptor.height
        )
        planned.append((layer, target))
    return planned, skipped


def process_single_group(
    descriptor_path: Path,
    tex_dir: Path,
    output_dir: Path,
    enable_lower_layers: bool = True,
) -> GroupResult:
    """Parse one descriptor and compose every layer the policy allows.

    The descriptor is parsed completely before any layer is written, so a
    malformed file leaves no output behind. Errors propagate to the caller.

    Args:
        descriptor_path: Path to the .dzi descriptor
        tex_dir: Root directory of tile images
        output_dir: Root output directory
        enable_lower_layers: Composite layers past index 1 as well

    Returns:
        GroupResult listing written files and skipped layers
    """
    descriptor_path = Path(descriptor_path)
    group_name = descriptor_path.stem
    logger.info("Handling %s ...", group_name)

    descriptor = parse_descriptor(descriptor_path)
    planned, skipped = plan_layers(descriptor, enable_lower_layers)
    for index in skipped:
        logger.info("Skip layer_%d of %s due to config", index, group_name)

    compositor = LayerCompositor(tex_dir, output_dir)
    result = GroupResult(group_name=group_name, skipped_layers=skipped)
    for layer, target in planned:
        out_file = compositor.compose(layer, target)
        if out_file is not None:
            result.written.append(out_file)

    return result
