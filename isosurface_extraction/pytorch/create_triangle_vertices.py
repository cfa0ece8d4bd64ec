import torch
from jaxtyping import Float, Int32, Int64
from torch import Tensor
from torch.profiler import record_function

from ..interface.create_triangle_vertices import MeshBuffers
from ..misc import (
    compute_face_normals,
    get_base_point_index,
    get_corner_point_offsets,
    round_isovalue,
)
from ..tables import get_tables


@record_function("create_triangle_vertices")
def create_triangle_vertices(
    grid_scalars: Float[Tensor, " point"],
    grid_coordinates: Float[Tensor, "point xyz=3"],
    grid_shape: tuple[int, int, int],
    attributes: Float[Tensor, " point"] | None,
    case_indices: Int32[Tensor, " cell"],
    vertex_counts: Int32[Tensor, " cell"],
    valid_cell_indices: Int64[Tensor, " valid_cell"],
    vertex_offsets: Int64[Tensor, " valid_cell"],
    isovalue: float,
    buffers: MeshBuffers,
) -> None:
    device = grid_scalars.device
    tables = get_tables(device)
    num_vertices, _ = buffers.vertices.shape
    num_valid_cells = valid_cell_indices.shape[0]

    # Find the valid cell that emits each output vertex and the vertex's position within
    # that cell's run of vertices.
    owners = torch.repeat_interleave(
        torch.arange(num_valid_cells, device=device),
        vertex_counts[valid_cell_indices].type(torch.int64),
        output_size=num_vertices,
    )
    local_indices = torch.arange(num_vertices, device=device) - vertex_offsets[owners]
    cell_indices = valid_cell_indices[owners]

    # Look up the edge each vertex lies on and the point indices of its endpoints.
    cases = case_indices[cell_indices].type(torch.int64)
    edges = tables.triangles[cases, local_indices]
    v0, v1 = tables.edge_corners[edges].unbind(dim=-1)
    corner_offsets = torch.tensor(get_corner_point_offsets(grid_shape), device=device)
    base = get_base_point_index(cell_indices, grid_shape)
    p0 = base + corner_offsets[v0]
    p1 = base + corner_offsets[v1]

    # Interpolate to where the field crosses the isovalue.
    f0 = grid_scalars[p0]
    f1 = grid_scalars[p1]
    t = (round_isovalue(isovalue, grid_scalars.dtype) - f0) / (f1 - f0)
    c0 = grid_coordinates[p0]
    c1 = grid_coordinates[p1]
    buffers.vertices[:, :3] = c0 + t[:, None] * (c1 - c0)
    buffers.vertices[:, 3] = 1

    if buffers.scalars is not None:
        a0 = attributes[p0]
        a1 = attributes[p1]
        buffers.scalars[:] = a0 + t * (a1 - a0)

    buffers.normals[:] = compute_face_normals(buffers.vertices[:, :3])
