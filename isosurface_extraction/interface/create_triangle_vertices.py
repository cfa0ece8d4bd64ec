from typing import NamedTuple, Protocol

from jaxtyping import Float, Float32, Int32, Int64
from torch import Tensor


class MeshBuffers(NamedTuple):
    vertices: Float32[Tensor, "vertex xyzw=4"]
    normals: Float32[Tensor, "vertex xyz=3"]
    scalars: Float32[Tensor, " vertex"] | None


class CreateTriangleVerticesFn(Protocol):
    def __call__(
        self,
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
        """Fill the buffers in place. Valid cell i writes the vertex range that starts
        at vertex_offsets[i] and spans vertex_counts[valid_cell_indices[i]] entries.
        """
        pass
