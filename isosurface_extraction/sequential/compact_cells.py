from bisect import bisect_right
from itertools import accumulate

import torch
from jaxtyping import Int32
from torch import Tensor
from torch.profiler import record_function

from ..interface.compact_cells import CompactCellsResult
from .compute_exclusive_cumsum import compute_exclusive_cumsum


@record_function("compact_cells_sequential")
def compact_cells(vertex_counts: Int32[Tensor, " cell"]) -> CompactCellsResult:
    kwargs = dict(dtype=torch.int64, device=vertex_counts.device)
    counts = vertex_counts.tolist()

    valid_cell_enum = list(accumulate(int(count != 0) for count in counts))
    num_valid_cells = valid_cell_enum[-1]
    if num_valid_cells == 0:
        empty = torch.zeros((0,), **kwargs)
        return CompactCellsResult(empty, empty.clone(), 0)

    valid_cell_indices = [
        bisect_right(valid_cell_enum, rank) for rank in range(num_valid_cells)
    ]

    vertex_offsets = torch.tensor(
        [counts[cell_index] for cell_index in valid_cell_indices],
        **kwargs,
    )
    compute_exclusive_cumsum(vertex_offsets)
    num_vertices = vertex_offsets[-1].item() + counts[valid_cell_indices[-1]]

    return CompactCellsResult(
        torch.tensor(valid_cell_indices, **kwargs),
        vertex_offsets,
        num_vertices,
    )
