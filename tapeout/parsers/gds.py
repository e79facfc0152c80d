"""GDSII stream inspection through KLayout's layout database.

Enough to tell whether a file loads as a layout and which cells and layers
it holds; geometry is not examined.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import klayout.db as pya

logger = logging.getLogger(__name__)


@dataclass
class GDSInfo:
    """What was found in a GDSII stream."""

    valid_format: bool
    cell_names: list[str] = field(default_factory=list)
    top_cells: list[str] = field(default_factory=list)
    layers: set[tuple[int, int]] = field(default_factory=set)  # (layer, datatype)
    dbu: float | None = None
    error: str = ""


def inspect_gds(path: str | Path) -> GDSInfo:
    """
    Load a GDSII file and list its cells and layers.

    Args:
        path: GDSII file

    Returns:
        GDSInfo; ``valid_format`` is False when KLayout cannot load the
        file or it holds no cells, in which case nothing else is filled in

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"GDS file not found: {path}")

    layout = pya.Layout()
    try:
        layout.read(str(path))
    except RuntimeError as e:
        logger.debug(f"KLayout could not read {path}: {e}")
        return GDSInfo(valid_format=False, error=str(e))

    cell_names = [cell.name for cell in layout.each_cell()]
    if not cell_names:
        return GDSInfo(valid_format=False, error="Layout holds no cells")

    return GDSInfo(
        valid_format=True,
        cell_names=cell_names,
        top_cells=[cell.name for cell in layout.top_cells()],
        layers={(info.layer, info.datatype) for info in layout.layer_infos()},
        dbu=layout.dbu,
    )
