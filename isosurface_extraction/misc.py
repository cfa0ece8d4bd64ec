from math import prod
from typing import TypeVar

import torch
from einops import rearrange, repeat
from jaxtyping import Float
from torch import Tensor

from .tables import CORNER_OFFSETS

T = TypeVar("T")

# Corner scalars at or below this value are treated as missing readings when cells are
# classified with discard_min_values=True.
MIN_VALID_VALUE = -500.0

# Lower bound on the cross product's length when normalizing face normals. Zero-area
# triangles end up with zero normals.
NORMAL_EPSILON = 1e-12


def get_num_cells(grid_shape: tuple[int, int, int]) -> int:
    return prod(length - 1 for length in grid_shape)


def get_base_point_index(cell_index: T, grid_shape: tuple[int, int, int]) -> T:
    """Return the point index of a cell's first corner. This works for plain integers
    as well as integer tensors.
    """
    nx, ny, _ = grid_shape
    x = cell_index % (nx - 1)
    y = (cell_index // (nx - 1)) % (ny - 1)
    z = cell_index // ((nx - 1) * (ny - 1))
    return x + y * nx + z * nx * ny


def get_corner_point_offsets(grid_shape: tuple[int, int, int]) -> tuple[int, ...]:
    # The offset from a cell's first corner to each of its 8 corners in point indices.
    nx, ny, _ = grid_shape
    return tuple(dx + dy * nx + dz * nx * ny for dx, dy, dz in CORNER_OFFSETS)


def round_isovalue(isovalue: float, dtype: torch.dtype) -> float:
    # Match the precision the scalar field is compared at.
    return torch.tensor(isovalue, dtype=dtype).item()


def compute_face_normals(
    vertices: Float[Tensor, "vertex xyz=3"],
) -> Float[Tensor, "vertex xyz=3"]:
    """Compute one normal per triangle (consecutive vertex triple) and assign it to all
    three of the triangle's vertices.
    """
    a, b, c = rearrange(
        vertices,
        "(triangle corner) xyz -> corner triangle xyz",
        corner=3,
    )
    normals = torch.linalg.cross(b - a, c - a, dim=-1)
    length = normals.norm(dim=-1, keepdim=True).clamp_min(NORMAL_EPSILON)
    return repeat(normals / length, "triangle xyz -> (triangle corner) xyz", corner=3)
