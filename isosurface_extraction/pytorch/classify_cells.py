import torch
from einops import reduce
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
from ..tables import get_tables


@record_function("classify_cells")
def classify_cells(
    scalars: Float[Tensor, " point"],
    grid_shape: tuple[int, int, int],
    isovalue: float,
    discard_min_values: bool,
    min_valid_value: float,
) -> ClassifyCellsResult:
    device = scalars.device
    tables = get_tables(device)

    # Gather each cell's eight corner scalars.
    cell_indices = torch.arange(get_num_cells(grid_shape), device=device)
    corner_offsets = torch.tensor(get_corner_point_offsets(grid_shape), device=device)
    base = get_base_point_index(cell_indices, grid_shape)
    values = scalars[base[None] + corner_offsets[:, None]]

    # Set bit k for every corner k that lies above the isovalue.
    above = values > round_isovalue(isovalue, scalars.dtype)
    powers = 1 << torch.arange(8, device=device)
    case_indices = reduce(above * powers[:, None], "corner cell -> cell", "sum")
    vertex_counts = tables.vertex_counts[case_indices]

    # Optionally drop cells that touch a missing reading.
    if discard_min_values:
        invalid = (values <= min_valid_value).any(dim=0)
        vertex_counts = torch.where(invalid, 0, vertex_counts)

    return ClassifyCellsResult(
        case_indices.type(torch.int32),
        vertex_counts.type(torch.int32),
    )
