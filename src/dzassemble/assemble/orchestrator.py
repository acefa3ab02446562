"""Pyramid orchestration: rebuild every group's layer images from scratch."""

from __future__ import annotations

import logging
import multiprocessing
import shutil
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from tqdm import tqdm

from dzassemble.config import DEFAULT_PARALLEL_GROUPS

from .descriptor import find_descriptor_files
from .worker import GroupResult, process_single_group

logger = logging.getLogger(__name__)


@dataclass
class AssembleResult:
    """Summary of a complete run.

    Attributes:
        groups: Results per descriptor, in sorted descriptor order
    """

    groups: list[GroupResult] = field(default_factory=list)

    @property
    def written(self) -> list[Path]:
        return [path for group in self.groups for path in group.written]

    @property
    def skipped(self) -> list[tuple[str, int]]:
        return [
            (group.group_name, index)
            for group in self.groups
            for index in group.skipped_layers
        ]


class PyramidAssembler:
    """Rebuilds the output tree for every descriptor in an event directory.

    A run has two phases: ``clear_output`` removes any previous output tree,
    then ``populate`` composes every descriptor into it. Any failure aborts
    the run.

    Args:
        event_dir: Directory holding the .dzi descriptors
        tex_dir: Root directory of tile images
        output_dir: Directory rebuilt with one folder per group
        enable_lower_layers: Composite layers past index 1 as well
        parallel_groups: Descriptors composed concurrently (1 = sequential)
        progress: Show a progress bar over descriptors
    """

    def __init__(
        self,
        event_dir: Path,
        tex_dir: Path,
        output_dir: Path,
        enable_lower_layers: bool = True,
        parallel_groups: int = DEFAULT_PARALLEL_GROUPS,
        progress: bool = False,
    ) -> None:
        if parallel_groups < 1:
            raise ValueError(f"parallel_groups must be at least 1, got {parallel_groups}")
        self.event_dir = Path(event_dir)
        self.tex_dir = Path(tex_dir)
        self.output_dir = Path(output_dir)
        self.enable_lower_layers = enable_lower_layers
        self.parallel_groups = parallel_groups
        self.progress = progress

    def validate_inputs(self) -> None:
        """Check that the descriptor and tile directories exist.

        Raises:
            FileNotFoundError: If either directory is missing
        """
        for label, path in (("event", self.event_dir), ("tex", self.tex_dir)):
            if not path.is_dir():
                raise FileNotFoundError(f"{label} directory does not exist: {path}")

    def clear_output(self) -> None:
        """Remove the previous output tree and recreate an empty root."""
        if self.output_dir.exists():
            logger.debug("Removing previous output %s", self.output_dir)
            shutil.rmtree(self.output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def populate(self) -> AssembleResult:
        """Compose every descriptor of the event directory into the output tree."""
        descriptor_files = find_descriptor_files(self.event_dir)
        if not descriptor_files:
            logger.warning("No descriptor files found in %s", self.event_dir)

        if self.parallel_groups > 1 and len(descriptor_files) > 1:
            groups = self._populate_parallel(descriptor_files)
        else:
            groups = self._populate_sequential(descriptor_files)

        result = AssembleResult(groups=groups)
        logger.info(
            "Assembled %d group(s): %d layer image(s) written, %d layer(s) skipped",
            len(result.groups), len(result.written), len(result.skipped),
        )
        return result

    def run(self) -> AssembleResult:
        """Validate inputs, clear the output tree, then populate it."""
        self.validate_inputs()
        self.clear_output()
        return self.populate()

    def _populate_sequential(self, descriptor_files: list[Path]) -> list[GroupResult]:
        groups = []
        with tqdm(
            total=len(descriptor_files), desc="Assembling groups", disable=not self.progress
        ) as pbar:
            for path in descriptor_files:
                groups.append(
                    process_single_group(
                        path, self.tex_dir, self.output_dir, self.enable_lower_layers
                    )
                )
                pbar.update(1)
        return groups

    def _populate_parallel(self, descriptor_files: list[Path]) -> list[GroupResult]:
        """Compose descriptors in a process pool, stopping at the first failure."""
        results: dict[Path, GroupResult] = {}
        workers = min(self.parallel_groups, len(descriptor_files))

        # libvips thread pools are not fork-safe
        context = multiprocessing.get_context("spawn")
        with ProcessPoolExecutor(max_workers=workers, mp_context=context) as executor:
            futures = {
                executor.submit(
                    process_single_group,
                    path,
                    self.tex_dir,
                    self.output_dir,
                    self.enable_lower_layers,
                ): path
                for path in descriptor_files
            }

            with tqdm(
                total=len(descriptor_files), desc="Assembling groups", disable=not self.progress
            ) as pbar:
                try:
                    for future in as_completed(futures):
                        results[futures[future]] = future.result()
                        pbar.update(1)
                except BaseException:
                    logger.error("Aborting run: a group failed, cancelling pending groups")
                    executor.shutdown(wait=True, cancel_futures=True)
                    raise

        return [results[path] for path in descriptor_files]


def run(
    event_dir: Path,
    tex_dir: Path,
    output_dir: Path,
    enable_lower_layers: bool = True,
    parallel_groups: int = DEFAULT_PARALLEL_GROUPS,
    progress: bool = False,
) -> AssembleResult:
    """Rebuild ``output_dir`` from every descriptor in ``event_dir``.

    Args:
        event_dir: Directory holding the .dzi descriptors
        tex_dir: Root directory of tile images
        output_dir: Output directory, removed and rebuilt
        enable_lower_layers: Composite layers past index 1 as well
        parallel_groups: Descriptors composed concurrently (1 = sequential)
        progress: Show a progress bar over descriptors

    Returns:
        AssembleResult summarizing the run

    Raises:
        FileNotFoundError: If the event or tile directory is missing
        DescriptorError: If a descriptor is malformed
        TileMetadataError: If a layer's first tile cannot be sized
    """
    assembler = PyramidAssembler(
        event_dir,
        tex_dir,
        output_dir,
        enable_lower_layers=enable_lower_layers,
        parallel_groups=parallel_groups,
        progress=progress,
    )
    return assembler.run()
