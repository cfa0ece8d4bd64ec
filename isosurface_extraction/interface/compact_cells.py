from typing import NamedTuple, Protocol

from jaxtyping import Int32, Int64
from torch import Tensor


class CompactCellsResult(NamedTuple):
    # The indices of the cells that emit at least one vertex, in grid order.
    valid_cell_indices: Int64[Tensor, " valid_cell"]

    # The index of each valid cell's first output vertex. Together with the vertex
    # counts, these ranges tile [0, num_vertices) without gaps or overlaps.
    vertex_offsets: Int64[Tensor, " valid_cell"]

    num_vertices: int

    @property
    def num_valid_cells(self) -> int:
        return self.valid_cell_indices.shape[0]


class CompactCellsFn(Protocol):
    def __call__(self, vertex_counts: Int32[Tensor, " cell"]) -> CompactCellsResult:
        pass
