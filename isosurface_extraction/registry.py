from typing import Literal

from .interface.classify_cells import ClassifyCellsFn
from .interface.compact_cells import CompactCellsFn
from .interface.compute_exclusive_cumsum import ComputeExclusiveCumsumFn
from .interface.create_triangle_vertices import CreateTriangleVerticesFn
from .pytorch.classify_cells import classify_cells as classify_cells_torch
from .pytorch.compact_cells import compact_cells as compact_cells_torch
from .pytorch.compute_exclusive_cumsum import (
    compute_exclusive_cumsum as compute_exclusive_cumsum_torch,
)
from .pytorch.create_triangle_vertices import (
    create_triangle_vertices as create_triangle_vertices_torch,
)
from .sequential.classify_cells import classify_cells as classify_cells_sequential
from .sequential.compact_cells import compact_cells as compact_cells_sequential
from .sequential.compute_exclusive_cumsum import (
    compute_exclusive_cumsum as compute_exclusive_cumsum_sequential,
)
from .sequential.create_triangle_vertices import (
    create_triangle_vertices as create_triangle_vertices_sequential,
)

# "torch" runs every stage as vectorized tensor operations on the grid's device.
# "sequential" visits one cell at a time in Python and serves as the reference.
Backend = Literal["torch", "sequential"]

CLASSIFY_CELLS: dict[Backend, ClassifyCellsFn] = {
    "torch": classify_cells_torch,
    "sequential": classify_cells_sequential,
}

COMPUTE_EXCLUSIVE_CUMSUM: dict[Backend, ComputeExclusiveCumsumFn] = {
    "torch": compute_exclusive_cumsum_torch,
    "sequential": compute_exclusive_cumsum_sequential,
}

COMPACT_CELLS: dict[Backend, CompactCellsFn] = {
    "torch": compact_cells_torch,
    "sequential": compact_cells_sequential,
}

CREATE_TRIANGLE_VERTICES: dict[Backend, CreateTriangleVerticesFn] = {
    "torch": create_triangle_vertices_torch,
    "sequential": create_triangle_vertices_sequential,
}
