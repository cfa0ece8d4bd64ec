from jaxtyping import Int
from torch import Tensor
from torch.profiler import record_function


@record_function("compute_exclusive_cumsum")
def compute_exclusive_cumsum(x: Int[Tensor, " entry"]) -> None:
    # Shift the inclusive scan right by one entry.
    inclusive = x.cumsum(dim=0)
    x[1:] = inclusive[:-1]
    x[:1] = 0
