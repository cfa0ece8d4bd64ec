import torch
from jaxtyping import Int32
from torch import Tensor
from torch.profiler import record_function

from ..interface.compact_cells import CompactCellsResult
from .compute_exclusive_cumsum import compute_exclusive_cumsum


@record_function("compact_cells")
def compact_cells(vertex_counts: Int32[Tensor, " cell"]) -> CompactCellsResult:
    device = vertex_counts.device

    # Enumerate the valid cells (the ones that emit vertices) with an inclusive scan.
    # The scan's last entry is the number of valid cells.
    valid_cell_enum = (vertex_counts != 0).cumsum(dim=0)
    num_valid_cells = valid_cell_enum[-1].item()
    if num_valid_cells == 0:
        empty = torch.zeros((0,), dtype=torch.int64, device=device)
        return CompactCellsResult(empty, empty.clone(), 0)

    # The r-th valid cell is the first cell whose running count exceeds r, which is
    # exactly what an upper-bound search over the scan returns.
    ranks = torch.arange(num_valid_cells, device=device)
    valid_cell_indices = torch.searchsorted(valid_cell_enum, ranks, right=True)

    # Turn the valid cells' vertex counts into output offsets.
    vertex_offsets = vertex_counts[valid_cell_indices].type(torch.int64)
    last_vertex_count = vertex_offsets[-1].item()
    compute_exclusive_cumsum(vertex_offsets)
    num_vertices = vertex_offsets[-1].item() + last_vertex_count

    return CompactCellsResult(valid_cell_indices, vertex_offsets, num_vertices)
