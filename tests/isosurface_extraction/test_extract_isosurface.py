import math

import pytest
import torch
from jaxtyping import TypeCheckError, install_import_hook

from tests.misc import namedtuple_allclose

with install_import_hook(
    ("isosurface_extraction", "visualization"),
    "beartype.beartype",
):
    from isosurface_extraction import (
        MarchingCubes,
        ReusableSink,
        extract_isosurface,
    )
    from isosurface_extraction.sink import OutputSink, TensorSink
    from isosurface_extraction.tables import VERTEX_COUNT_TABLE
    from isosurface_extraction.types import Grid, Isosurface
    from visualization.isosurface.grids import (
        off_center_sphere,
        random_field,
        sample_field,
        sphere,
        sphere_field,
        torus,
    )
    from tests.isosurface_extraction.misc import (
        get_triangle_areas,
        make_grid,
        mirror_grid_x,
        random_grid,
    )

VALID_BACKENDS = ("torch", "sequential")


def check_partition(surface: Isosurface) -> None:
    counts = surface.vertex_counts.tolist()
    cases = surface.case_indices.tolist()
    valid_cell_indices = surface.valid_cell_indices.tolist()

    assert counts == [VERTEX_COUNT_TABLE[case] for case in cases]
    assert all(count % 3 == 0 for count in counts)
    assert valid_cell_indices == [i for i, count in enumerate(counts) if count > 0]

    offset = 0
    for cell_index, vertex_offset in zip(
        valid_cell_indices,
        surface.vertex_offsets.tolist(),
    ):
        assert vertex_offset == offset
        offset += counts[cell_index]
    assert surface.num_vertices == offset == sum(counts)


@pytest.mark.parametrize("backend", VALID_BACKENDS)
@pytest.mark.parametrize(("value", "case_index"), ((-1.0, 0), (1.0, 255)))
def test_uniform_grid(device, backend, value, case_index):
    grid = Grid.from_volume(torch.full((3, 4, 5), value, device=device))
    surface = extract_isosurface(grid, 0.0, backend)

    assert (surface.case_indices == case_index).all()
    assert (surface.vertex_counts == 0).all()
    assert surface.num_valid_cells == 0
    assert surface.vertices.shape == (0, 4)
    assert surface.normals.shape == (0, 3)
    assert surface.scalars is None
    assert surface.faces.shape == (0, 3)


@pytest.mark.parametrize("backend", VALID_BACKENDS)
def test_single_straddling_cell(device, backend):
    values = [[[-1.0] * 3 for _ in range(3)] for _ in range(3)]
    values[0][0][0] = 1.0
    grid = make_grid(values, device)
    surface = extract_isosurface(grid, 0.0, backend)

    assert surface.case_indices.tolist() == [1, 0, 0, 0, 0, 0, 0, 0]
    assert surface.valid_cell_indices.tolist() == [0]
    assert surface.vertex_offsets.tolist() == [0]
    assert surface.num_vertices == 3
    assert surface.faces.tolist() == [[0, 1, 2]]

    # Every vertex sits halfway along an edge that touches the first point.
    xyz = surface.vertices[:, :3]
    assert torch.allclose(xyz.sum(dim=-1), torch.full_like(xyz[:, 0], 0.5))


@pytest.mark.parametrize("backend", VALID_BACKENDS)
@pytest.mark.parametrize("seed", (0, 1, 2))
def test_partition(device, backend, seed):
    grid = random_grid((5, 6, 7), seed, device)
    check_partition(extract_isosurface(grid, 0.1, backend))


def test_idempotent(device):
    grid = torus(device)
    first = extract_isosurface(grid, 0.0, "torch")
    second = extract_isosurface(grid, 0.0, "torch")
    assert namedtuple_allclose(first, second)


def test_sphere_area(device):
    surface = extract_isosurface(sphere(device), 0.0, "torch")
    check_partition(surface)
    area = get_triangle_areas(surface.vertices).sum().item()
    expected = 4 * math.pi * 0.6**2
    assert abs(area - expected) / expected < 0.03


def test_isovalue_grows_sphere(device):
    grid = sphere(device)
    small = extract_isosurface(grid, -0.2, "torch")
    large = extract_isosurface(grid, 0.2, "torch")
    assert small.num_vertices < large.num_vertices

    # The field is the distance from the sphere, so raising the isovalue by 0.2 moves
    # every vertex 0.2 further from the center.
    radii = small.vertices[:, :3].norm(dim=-1)
    assert torch.allclose(radii, torch.full_like(radii, 0.4), atol=0.01)
    radii = large.vertices[:, :3].norm(dim=-1)
    assert torch.allclose(radii, torch.full_like(radii, 0.8), atol=0.01)


def test_mirror_symmetry(device):
    grid = sample_field(sphere_field((0.25, -0.125, 0.0), 0.5), 17, device)
    surface = extract_isosurface(grid, 0.0, "torch")
    mirrored = extract_isosurface(mirror_grid_x(grid), 0.0, "torch")
    assert surface.num_valid_cells == mirrored.num_valid_cells

    # The mirrored surface's vertices are the original ones reflected across x = 0.
    reflected = surface.vertices[:, :3] * torch.tensor((-1.0, 1.0, 1.0), device=device)
    distances = torch.cdist(
        reflected,
        mirrored.vertices[:, :3],
        compute_mode="donot_use_mm_for_euclid_dist",
    )
    assert distances.min(dim=1).values.max() < 1e-4
    assert distances.min(dim=0).values.max() < 1e-4


@pytest.mark.parametrize(
    ("grid_fn", "min_area"),
    ((random_field, 1e-2), (off_center_sphere, 1e-5), (torus, 1e-5)),
)
def test_backends_agree(device, grid_fn, min_area):
    grid = grid_fn(device)
    x, _, _ = grid.coordinates.unbind(dim=-1)
    expected = extract_isosurface(grid, 0.05, "torch", attributes=x)
    actual = extract_isosurface(grid, 0.05, "sequential", attributes=x)

    assert (expected.case_indices == actual.case_indices).all()
    assert (expected.vertex_counts == actual.vertex_counts).all()
    assert (expected.valid_cell_indices == actual.valid_cell_indices).all()
    assert (expected.vertex_offsets == actual.vertex_offsets).all()
    assert torch.allclose(expected.vertices, actual.vertices, atol=1e-5)
    assert torch.allclose(expected.scalars, actual.scalars, atol=1e-5)

    # Normals of nearly degenerate triangles depend on rounding.
    valid = get_triangle_areas(expected.vertices) > min_area
    expected_normals = expected.normals.view(-1, 3, 3)[valid]
    actual_normals = actual.normals.view(-1, 3, 3)[valid]
    assert torch.allclose(expected_normals, actual_normals, atol=1e-4)


@pytest.mark.parametrize("backend", VALID_BACKENDS)
def test_attributes(device, backend):
    grid = sphere(device)
    _, _, z = grid.coordinates.unbind(dim=-1)
    surface = extract_isosurface(grid, 0.0, backend, attributes=z)
    assert surface.scalars.shape == (surface.num_vertices,)
    assert torch.allclose(surface.scalars, surface.vertices[:, 2], atol=1e-5)


def test_invalid_inputs(device):
    with pytest.raises(ValueError):
        Grid.from_volume(torch.zeros((1, 4, 4), device=device))

    grid = random_grid((3, 3, 3), 0, device)
    attributes = torch.zeros(grid.num_points + 1, device=device)
    with pytest.raises(ValueError):
        extract_isosurface(grid, 0.0, "torch", attributes=attributes)


@pytest.mark.parametrize("backend", VALID_BACKENDS)
def test_discard_min_values(device, backend):
    generator = torch.Generator(device)
    generator.manual_seed(0)
    volume = torch.rand((4, 4, 4), generator=generator, device=device) - 0.5
    volume[1, 1, 1] = -1000.0
    grid = Grid.from_volume(volume)

    kept = extract_isosurface(grid, 0.0, backend)
    filtered = extract_isosurface(grid, 0.0, backend, discard_min_values=True)

    # Only the 8 cells around the missing reading are dropped. They keep their cases.
    assert (kept.case_indices == filtered.case_indices).all()
    dropped = (kept.vertex_counts != filtered.vertex_counts).nonzero().flatten()
    neighbors = [x + 3 * y + 9 * z for x in (0, 1) for y in (0, 1) for z in (0, 1)]
    assert set(dropped.tolist()) <= set(neighbors)
    assert (filtered.vertex_counts[neighbors] == 0).all()
    assert filtered.num_vertices < kept.num_vertices

    # A threshold below the reading keeps everything.
    unfiltered = extract_isosurface(
        grid,
        0.0,
        backend,
        discard_min_values=True,
        min_valid_value=-2000.0,
    )
    assert namedtuple_allclose(kept, unfiltered)


def test_marching_cubes(device):
    grid = sphere(device)
    marching_cubes = MarchingCubes()
    assert marching_cubes.result is None

    surface = marching_cubes(grid)
    assert marching_cubes.result is surface
    assert namedtuple_allclose(surface, extract_isosurface(grid, 0.0, "torch"))

    marching_cubes.set_isovalue(0.1)
    surface = marching_cubes(grid)
    assert namedtuple_allclose(surface, extract_isosurface(grid, 0.1, "torch"))

    marching_cubes.free_memory()
    assert marching_cubes.result is None


def test_reusable_sink(device):
    sink = ReusableSink()
    marching_cubes = MarchingCubes(backend="torch", sink=sink)

    # The smaller sphere fits into the buffers allocated for the larger one.
    large = marching_cubes(sphere(device))
    capacity = sink.capacity
    pointer = large.vertices.data_ptr()
    assert capacity == large.num_vertices
    small = marching_cubes(off_center_sphere(device))
    assert small.num_vertices < capacity
    assert sink.capacity == capacity
    assert small.vertices.data_ptr() == pointer
    expected = extract_isosurface(off_center_sphere(device), 0.0, "torch")
    assert namedtuple_allclose(small, expected)

    # A larger surface makes the buffers grow.
    marching_cubes.set_isovalue(0.2)
    larger = marching_cubes(sphere(device))
    assert larger.num_vertices > capacity
    assert sink.capacity == larger.num_vertices

    marching_cubes.free_memory()
    assert sink.capacity == 0
    assert sink.storage is None


class CountingSink:
    """Satisfies OutputSink structurally without subclassing it."""

    def __init__(self) -> None:
        self.requests = []

    def allocate(self, num_vertices, with_scalars, device):
        self.requests.append((num_vertices, with_scalars))
        return TensorSink().allocate(num_vertices, with_scalars, device)


def test_custom_sink(device):
    grid = sphere(device)
    sink = CountingSink()
    assert isinstance(sink, OutputSink)

    surface = extract_isosurface(grid, 0.0, "torch", sink=sink)
    assert sink.requests == [(surface.num_vertices, False)]
    assert namedtuple_allclose(surface, extract_isosurface(grid, 0.0, "torch"))

    # Objects without an allocate method are rejected at the call boundary.
    with pytest.raises(TypeCheckError):
        extract_isosurface(grid, 0.0, "torch", sink=object())
