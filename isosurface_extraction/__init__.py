import logging

from jaxtyping import Float
from torch import Tensor
from torch.profiler import record_function

from .interface.create_triangle_vertices import MeshBuffers as MeshBuffers
from .misc import MIN_VALID_VALUE
from .registry import (
    CLASSIFY_CELLS,
    COMPACT_CELLS,
    CREATE_TRIANGLE_VERTICES,
    Backend,
)
from .sink import OutputSink, TensorSink
from .types import Grid, Isosurface

# These imports are forwarded for convenience.
from .sink import ReusableSink as ReusableSink
from .tables import get_tables as get_tables


@record_function("extract_isosurface")
def extract_isosurface(
    grid: Grid,
    isovalue: float,
    backend: Backend,
    attributes: Float[Tensor, " point"] | None = None,
    discard_min_values: bool = False,
    min_valid_value: float = MIN_VALID_VALUE,
    sink: OutputSink | None = None,
) -> Isosurface:
    """Extract the surface on which the grid's scalar field equals the isovalue.

    If attributes (a second scalar field on the same points) are given, they are
    interpolated onto the surface's vertices. With discard_min_values, cells that have
    a corner scalar at or below min_valid_value are treated as empty.
    """
    if attributes is not None and attributes.shape != grid.scalars.shape:
        raise ValueError(
            f"Expected {grid.num_points} attribute values, got a tensor of shape "
            f"{tuple(attributes.shape)}."
        )
    if sink is None:
        sink = TensorSink()
    nx, ny, nz = grid.shape
    logging.debug(
        f"Extracting isosurface at {isovalue} from a grid of shape ({nx}, {ny}, {nz})."
    )

    # Classify every cell by which of its corners lie above the isovalue.
    case_indices, vertex_counts = CLASSIFY_CELLS[backend](
        grid.scalars,
        grid.shape,
        isovalue,
        discard_min_values,
        min_valid_value,
    )

    # Find the cells the surface passes through and where their vertices go.
    valid_cell_indices, vertex_offsets, num_vertices = COMPACT_CELLS[backend](
        vertex_counts
    )
    logging.debug(
        f"Found {valid_cell_indices.shape[0]} valid cells with {num_vertices} vertices."
    )

    # Generate the triangles. An empty surface simply yields empty buffers.
    buffers = sink.allocate(num_vertices, attributes is not None, grid.device)
    if num_vertices > 0:
        CREATE_TRIANGLE_VERTICES[backend](
            grid.scalars,
            grid.coordinates,
            grid.shape,
            attributes,
            case_indices,
            vertex_counts,
            valid_cell_indices,
            vertex_offsets,
            isovalue,
            buffers,
        )

    return Isosurface(
        case_indices,
        vertex_counts,
        valid_cell_indices,
        vertex_offsets,
        buffers.vertices,
        buffers.normals,
        buffers.scalars,
    )


class MarchingCubes:
    """A reusable extraction pipeline. The configuration persists across invocations,
    while every invocation recomputes all per-cell and per-vertex data.
    """

    def __init__(
        self,
        isovalue: float = 0.0,
        backend: Backend = "torch",
        discard_min_values: bool = False,
        min_valid_value: float = MIN_VALID_VALUE,
        sink: OutputSink | None = None,
    ) -> None:
        self.isovalue = isovalue
        self.backend = backend
        self.discard_min_values = discard_min_values
        self.min_valid_value = min_valid_value
        self.sink = TensorSink() if sink is None else sink
        self.result: Isosurface | None = None

    def set_isovalue(self, isovalue: float) -> None:
        self.isovalue = isovalue

    def __call__(
        self,
        grid: Grid,
        attributes: Float[Tensor, " point"] | None = None,
    ) -> Isosurface:
        # Release the previous result before new buffers are allocated.
        self.result = None
        self.result = extract_isosurface(
            grid,
            self.isovalue,
            self.backend,
            attributes=attributes,
            discard_min_values=self.discard_min_values,
            min_valid_value=self.min_valid_value,
            sink=self.sink,
        )
        return self.result

    def free_memory(self) -> None:
        self.result = None
        if isinstance(self.sink, ReusableSink):
            self.sink.release()
