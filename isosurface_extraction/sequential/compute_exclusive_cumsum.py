import torch
from jaxtyping import Int
from torch import Tensor
from torch.profiler import record_function


@record_function("compute_exclusive_cumsum_sequential")
def compute_exclusive_cumsum(x: Int[Tensor, " entry"]) -> None:
    total = 0
    result = []
    for value in x.tolist():
        result.append(total)
        total += value
    x[:] = torch.tensor(result, dtype=x.dtype, device=x.device)
