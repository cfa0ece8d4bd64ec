from dataclasses import dataclass
from math import prod
from typing import NamedTuple

import torch
from einops import rearrange
from jaxtyping import Float, Float32, Int32, Int64
from torch import Tensor


@dataclass(frozen=True)
class Grid:
    # The point lattice's extents as (nx, ny, nz). Point (x, y, z) has the linear index
    # x + y * nx + z * nx * ny.
    shape: tuple[int, int, int]

    # One scalar per point.
    scalars: Float[Tensor, " point"]

    # Each point's physical (world) coordinates.
    coordinates: Float[Tensor, "point xyz=3"]

    def __post_init__(self) -> None:
        if len(self.shape) != 3 or any(length < 2 for length in self.shape):
            raise ValueError(
                f"Grids need at least 2 points along each axis (got {self.shape})."
            )
        num_points = prod(self.shape)
        if self.scalars.shape != (num_points,):
            raise ValueError(
                f"Expected {num_points} scalars for a grid of shape {self.shape}, got "
                f"a tensor of shape {tuple(self.scalars.shape)}."
            )
        if self.coordinates.shape != (num_points, 3):
            raise ValueError(
                f"Expected coordinates of shape ({num_points}, 3), got "
                f"{tuple(self.coordinates.shape)}."
            )

    @staticmethod
    def from_volume(
        volume: Float[Tensor, "z y x"],
        origin: tuple[float, float, float] = (0.0, 0.0, 0.0),
        spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> "Grid":
        """Create an axis-aligned grid from a volume indexed as (z, y, x). The origin
        and spacing are given in (x, y, z) order.
        """
        nz, ny, nx = volume.shape
        axes = [
            torch.arange(length, dtype=torch.float32, device=volume.device) * step
            + start
            for length, step, start in zip((nx, ny, nz), spacing, origin)
        ]
        z, y, x = torch.meshgrid(axes[2], axes[1], axes[0], indexing="ij")
        coordinates = torch.stack((x, y, z), dim=-1)
        coordinates = rearrange(coordinates, "z y x xyz -> (z y x) xyz")
        return Grid((nx, ny, nz), rearrange(volume, "z y x -> (z y x)"), coordinates)

    @property
    def num_points(self) -> int:
        return self.scalars.shape[0]

    @property
    def num_cells(self) -> int:
        return prod(length - 1 for length in self.shape)

    @property
    def device(self) -> torch.device:
        return self.scalars.device


class Isosurface(NamedTuple):
    # Per-cell classification.
    case_indices: Int32[Tensor, " cell"]
    vertex_counts: Int32[Tensor, " cell"]

    # The cells that emit vertices (in grid order) and where their vertices start.
    valid_cell_indices: Int64[Tensor, " valid_cell"]
    vertex_offsets: Int64[Tensor, " valid_cell"]

    # A triangle soup: every 3 consecutive vertices form one triangle.
    vertices: Float32[Tensor, "vertex xyzw=4"]
    normals: Float32[Tensor, "vertex xyz=3"]
    scalars: Float32[Tensor, " vertex"] | None

    @property
    def num_valid_cells(self) -> int:
        return self.valid_cell_indices.shape[0]

    @property
    def num_vertices(self) -> int:
        return self.vertices.shape[0]

    @property
    def num_triangles(self) -> int:
        return self.vertices.shape[0] // 3

    @property
    def faces(self) -> Int64[Tensor, "triangle corner=3"]:
        indices = torch.arange(self.num_vertices, device=self.vertices.device)
        return rearrange(indices, "(triangle corner) -> triangle corner", corner=3)
