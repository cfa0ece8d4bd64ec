from typing import Protocol

from jaxtyping import Int
from torch import Tensor


class ComputeExclusiveCumsumFn(Protocol):
    def __call__(self, x: Int[Tensor, " entry"]) -> None:
        """Replace each entry with the sum of the entries before it (in place)."""
        pass
