from dataclasses import replace
from typing import Callable, Protocol

import torch
from jaxtyping import Float
from torch import Tensor

from isosurface_extraction.types import Grid


class GridFn(Protocol):
    def __call__(self, device: torch.device) -> Grid:
        pass


def sample_field(
    field: Callable[[Float[Tensor, "point xyz=3"]], Float[Tensor, " point"]],
    resolution: int,
    device: torch.device,
) -> Grid:
    """Sample a field on a cube spanning [-1, 1] along each axis. With an odd resolution
    that is one more than a power of two, the coordinates are exactly symmetric about
    the origin.
    """
    spacing = 2 / (resolution - 1)
    volume = torch.zeros(
        (resolution, resolution, resolution),
        dtype=torch.float32,
        device=device,
    )
    grid = Grid.from_volume(volume, (-1.0, -1.0, -1.0), (spacing, spacing, spacing))
    return replace(grid, scalars=field(grid.coordinates))


def sphere_field(
    center: tuple[float, float, float],
    radius: float,
) -> Callable[[Float[Tensor, "point xyz=3"]], Float[Tensor, " point"]]:
    def field(coordinates: Float[Tensor, "point xyz=3"]) -> Float[Tensor, " point"]:
        offset = coordinates - torch.tensor(center, device=coordinates.device)
        return offset.norm(dim=-1) - radius

    return field


def sphere(device: torch.device) -> Grid:
    return sample_field(sphere_field((0.0, 0.0, 0.0), 0.6), 33, device)


def off_center_sphere(device: torch.device) -> Grid:
    return sample_field(sphere_field((0.25, -0.125, 0.0), 0.5), 33, device)


def torus(device: torch.device) -> Grid:
    def field(coordinates: Float[Tensor, "point xyz=3"]) -> Float[Tensor, " point"]:
        x, y, z = coordinates.unbind(dim=-1)
        ring = torch.sqrt(x * x + y * y) - 0.6
        return torch.sqrt(ring * ring + z * z) - 0.25

    return sample_field(field, 33, device)


def two_spheres(device: torch.device) -> Grid:
    left = sphere_field((-0.45, 0.0, 0.0), 0.35)
    right = sphere_field((0.45, 0.0, 0.0), 0.35)

    def field(coordinates: Float[Tensor, "point xyz=3"]) -> Float[Tensor, " point"]:
        return torch.minimum(left(coordinates), right(coordinates))

    return sample_field(field, 33, device)


def random_field(device: torch.device) -> Grid:
    generator = torch.Generator(device)
    generator.manual_seed(0)
    volume = torch.rand((9, 9, 9), generator=generator, device=device) - 0.5
    return Grid.from_volume(volume)


GRIDS: dict[str, GridFn] = {
    "sphere": sphere,
    "off_center_sphere": off_center_sphere,
    "torus": torus,
    "two_spheres": two_spheres,
    "random_field": random_field,
}
