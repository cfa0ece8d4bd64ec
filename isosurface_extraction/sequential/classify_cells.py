import torch
from jaxtyping import Float
from torch import Tensor
from torch.profiler import record_function

from ..interface.classify_cells import ClassifyCellsResult
from ..misc import (
    get_base_point_index,
    get_corner_point_offsets,
    get_num_cells,
    round_isovalue,
)
from ..tables import VERTEX_COUNT_TABLE


@record_function("classify_cells_sequential")
def classify_cells(
    scalars: Float[Tensor, " point"],
    grid_shape: tuple[int, int, int],
    isovalue: float,
    discard_min_values: bool,
    min_valid_value: float,
) -> ClassifyCellsResult:
    values = scalars.tolist()
    isovalue = round_isovalue(isovalue, scalars.dtype)
    corner_offsets = get_corner_point_offsets(grid_shape)

    case_indices = []
    vertex_counts = []
    for cell_index in range(get_num_cells(grid_shape)):
        base = get_base_point_index(cell_index, grid_shape)
        corner_values = [values[base + offset] for offset in corner_offsets]

        case_index = 0
        for corner, value in enumerate(corner_values):
            if value > isovalue:
                case_index |= 1 << corner

        vertex_count = VERTEX_COUNT_TABLE[case_index]
        if discard_min_values and min(corner_values) <= min_valid_value:
            vertex_count = 0

        case_indices.append(case_index)
        vertex_counts.append(vertex_count)

    kwargs = dict(dtype=torch.int32, device=scalars.device)
    return ClassifyCellsResult(
        torch.tensor(case_indices, **kwargs),
        torch.tensor(vertex_counts, **kwargs),
    )
