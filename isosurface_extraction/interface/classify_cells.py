from typing import NamedTuple, Protocol

from jaxtyping import Float, Int32
from torch import Tensor


class ClassifyCellsResult(NamedTuple):
    # Bit k is set when corner k's scalar is strictly greater than the isovalue.
    case_indices: Int32[Tensor, " cell"]

    # The number of triangle vertices each cell emits.
    vertex_counts: Int32[Tensor, " cell"]


class ClassifyCellsFn(Protocol):
    def __call__(
        self,
        scalars: Float[Tensor, " point"],
        grid_shape: tuple[int, int, int],
        isovalue: float,
        discard_min_values: bool,
        min_valid_value: float,
    ) -> ClassifyCellsResult:
        pass
