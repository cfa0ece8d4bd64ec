import pytest
import torch
from jaxtyping import install_import_hook

with install_import_hook(
    ("isosurface_extraction", "visualization"),
    "beartype.beartype",
):
    from isosurface_extraction.registry import COMPACT_CELLS
    from isosurface_extraction.tables import VERTEX_COUNT_TABLE

VALID_BACKENDS = ("torch", "sequential")


@pytest.mark.parametrize("backend", VALID_BACKENDS)
@pytest.mark.parametrize(
    ("vertex_counts", "valid_cell_indices", "vertex_offsets", "num_vertices"),
    (
        ([0, 3, 0, 6, 0, 0, 3], [1, 3, 6], [0, 3, 9], 12),
        ([3, 3, 3], [0, 1, 2], [0, 3, 6], 9),
        ([0, 0, 0, 15], [3], [0], 15),
        ([12, 0], [0], [0], 12),
        ([0], [], [], 0),
        ([0, 0, 0, 0], [], [], 0),
    ),
)
def test_examples(
    device,
    backend,
    vertex_counts,
    valid_cell_indices,
    vertex_offsets,
    num_vertices,
):
    counts = torch.tensor(vertex_counts, dtype=torch.int32, device=device)
    result = COMPACT_CELLS[backend](counts)
    assert result.valid_cell_indices.tolist() == valid_cell_indices
    assert result.vertex_offsets.tolist() == vertex_offsets
    assert result.num_vertices == num_vertices
    assert result.num_valid_cells == len(valid_cell_indices)


@pytest.mark.parametrize("backend", VALID_BACKENDS)
@pytest.mark.parametrize("probability", (0.01, 0.1, 0.5, 0.9))
@pytest.mark.parametrize("seed", (0, 123))
def test_random(device, backend, probability, seed):
    generator = torch.Generator(device)
    generator.manual_seed(seed)

    # Draw counts from the table so that they are realistic.
    num_cells = 2000
    table = torch.tensor(VERTEX_COUNT_TABLE, dtype=torch.int32, device=device)
    cases = torch.randint(1, 255, (num_cells,), generator=generator, device=device)
    p = torch.full((num_cells,), probability, device=device)
    keep = torch.bernoulli(p, generator=generator).bool()
    vertex_counts = torch.where(keep, table[cases], 0)

    result = COMPACT_CELLS[backend](vertex_counts)

    # The valid cells are exactly the nonzero cells, in grid order.
    expected_indices = torch.nonzero(vertex_counts).flatten()
    assert (result.valid_cell_indices == expected_indices).all()

    # The offsets tile the output without gaps or overlaps.
    counts = vertex_counts[result.valid_cell_indices].type(torch.int64)
    assert result.num_vertices == counts.sum().item()
    if result.num_valid_cells > 0:
        assert result.vertex_offsets[0].item() == 0
        ends = result.vertex_offsets + counts
        assert (ends[:-1] == result.vertex_offsets[1:]).all()
        assert ends[-1].item() == result.num_vertices


@pytest.mark.parametrize("seed", (0, 1, 2))
def test_backends_agree(device, seed):
    generator = torch.Generator(device)
    generator.manual_seed(seed)
    vertex_counts = torch.randint(
        0, 6, (500,), generator=generator, device=device, dtype=torch.int32
    )
    vertex_counts = torch.where(vertex_counts < 4, 0, vertex_counts * 3 - 9)

    expected = COMPACT_CELLS["sequential"](vertex_counts)
    actual = COMPACT_CELLS["torch"](vertex_counts)
    assert (actual.valid_cell_indices == expected.valid_cell_indices).all()
    assert (actual.vertex_offsets == expected.vertex_offsets).all()
    assert actual.num_vertices == expected.num_vertices
