import torch


# Compares NamedTuples of tensors field by field. With the default tolerances, this
# checks for exact equality.
def namedtuple_allclose(a, b, rtol=0.0, atol=0.0) -> bool:
    if type(a) is not type(b):
        return False

    for value_a, value_b in zip(a, b):
        if isinstance(value_a, torch.Tensor):
            if not isinstance(value_b, torch.Tensor) or value_a.shape != value_b.shape:
                return False

            # Check closeness for floats.
            if value_a.is_floating_point():
                if not torch.allclose(value_a, value_b, rtol=rtol, atol=atol):
                    return False

            # Check equality for integers.
            elif not (value_a == value_b).all():
                return False

        elif value_a != value_b:
            return False

    return True
