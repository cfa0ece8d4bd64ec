import logging
from typing import Protocol, runtime_checkable

import torch

from .interface.create_triangle_vertices import MeshBuffers


@runtime_checkable
class OutputSink(Protocol):
    def allocate(
        self,
        num_vertices: int,
        with_scalars: bool,
        device: torch.device,
    ) -> MeshBuffers:
        """Return buffers with exactly num_vertices rows for the generator to fill."""
        pass


class TensorSink:
    """Allocates fresh tensors on every invocation."""

    def allocate(
        self,
        num_vertices: int,
        with_scalars: bool,
        device: torch.device,
    ) -> MeshBuffers:
        kwargs = dict(dtype=torch.float32, device=device)
        return MeshBuffers(
            torch.empty((num_vertices, 4), **kwargs),
            torch.empty((num_vertices, 3), **kwargs),
            torch.empty((num_vertices,), **kwargs) if with_scalars else None,
        )


class ReusableSink:
    """Keeps one set of buffers alive across invocations, the way a renderer keeps its
    vertex buffer objects, and only reallocates them when a surface needs more vertices
    than they can hold. The returned buffers are views into that storage, so they are
    overwritten by the next invocation.
    """

    def __init__(self) -> None:
        self.capacity = 0
        self.storage: MeshBuffers | None = None

    def allocate(
        self,
        num_vertices: int,
        with_scalars: bool,
        device: torch.device,
    ) -> MeshBuffers:
        if (
            self.storage is None
            or num_vertices > self.capacity
            or self.storage.vertices.device != device
            or (with_scalars and self.storage.scalars is None)
        ):
            self.storage = TensorSink().allocate(num_vertices, with_scalars, device)
            self.capacity = num_vertices
            logging.debug(f"Reallocated output buffers for {num_vertices} vertices.")

        vertices, normals, scalars = self.storage
        return MeshBuffers(
            vertices[:num_vertices],
            normals[:num_vertices],
            scalars[:num_vertices] if with_scalars else None,
        )

    def release(self) -> None:
        self.storage = None
        self.capacity = 0
