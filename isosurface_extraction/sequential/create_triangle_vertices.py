import math

import torch
from jaxtyping import Float, Int32, Int64
from torch import Tensor
from torch.profiler import record_function

from ..interface.create_triangle_vertices import MeshBuffers
from ..misc import (
    NORMAL_EPSILON,
    get_base_point_index,
    get_corner_point_offsets,
    round_isovalue,
)
from ..tables import EDGE_CORNERS, TRIANGLE_TABLE


def lerp(a: float, b: float, t: float) -> float:
    return a + t * (b - a)


def get_face_normal(
    a: list[float],
    b: list[float],
    c: list[float],
) -> list[float]:
    ux, uy, uz = (b[i] - a[i] for i in range(3))
    vx, vy, vz = (c[i] - a[i] for i in range(3))
    normal = (uy * vz - uz * vy, uz * vx - ux * vz, ux * vy - uy * vx)
    length = max(math.sqrt(sum(x * x for x in normal)), NORMAL_EPSILON)
    return [x / length for x in normal]


@record_function("create_triangle_vertices_sequential")
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
    values = grid_scalars.tolist()
    coordinates = grid_coordinates.tolist()
    source = None if buffers.scalars is None else attributes.tolist()
    isovalue = round_isovalue(isovalue, grid_scalars.dtype)
    corner_offsets = get_corner_point_offsets(grid_shape)
    cases = case_indices.tolist()
    counts = vertex_counts.tolist()

    for cell_index, offset in zip(valid_cell_indices.tolist(), vertex_offsets.tolist()):
        case_index = cases[cell_index]
        count = counts[cell_index]
        base = get_base_point_index(cell_index, grid_shape)
        corners = [base + corner_offset for corner_offset in corner_offsets]

        # Interpolate along each edge listed for this case.
        cell_vertices = []
        cell_scalars = []
        for v in range(count):
            v0, v1 = EDGE_CORNERS[TRIANGLE_TABLE[case_index][v]]
            p0 = corners[v0]
            p1 = corners[v1]
            t = (isovalue - values[p0]) / (values[p1] - values[p0])
            position = [lerp(a, b, t) for a, b in zip(coordinates[p0], coordinates[p1])]
            cell_vertices.append(position + [1.0])
            if source is not None:
                cell_scalars.append(lerp(source[p0], source[p1], t))

        # Each triangle's three vertices share the triangle's normal.
        cell_normals = []
        for v in range(0, count, 3):
            a, b, c = (vertex[:3] for vertex in cell_vertices[v : v + 3])
            cell_normals.extend([get_face_normal(a, b, c)] * 3)

        end = offset + count
        buffers.vertices[offset:end] = torch.tensor(cell_vertices)
        buffers.normals[offset:end] = torch.tensor(cell_normals)
        if buffers.scalars is not None:
            buffers.scalars[offset:end] = torch.tensor(cell_scalars)
