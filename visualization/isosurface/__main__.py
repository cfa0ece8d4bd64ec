import logging
from pathlib import Path

import torch
import typer
from jaxtyping import install_import_hook
from trimesh import Trimesh

with install_import_hook(
    ("isosurface_extraction", "visualization"),
    "beartype.beartype",
):
    from isosurface_extraction import extract_isosurface
    from isosurface_extraction.registry import CLASSIFY_CELLS
    from visualization.isosurface.grids import GRIDS


def main(
    grid_name: str = "sphere",
    isovalue: float = 0.0,
    backend: str = "torch",
    workspace: Path = Path("scratch/visualization"),
    verbose: bool = False,
) -> None:
    if backend not in CLASSIFY_CELLS:
        choices = ", ".join(CLASSIFY_CELLS)
        raise typer.BadParameter(
            f"Unknown backend {backend!r} (expected one of {choices})."
        )
    if grid_name not in GRIDS:
        choices = ", ".join(GRIDS)
        raise typer.BadParameter(
            f"Unknown grid {grid_name!r} (expected one of {choices})."
        )

    if verbose:
        logging.basicConfig(level=logging.DEBUG)

    device = torch.device("cuda:0" if torch.cuda.is_available() else "cpu")
    grid = GRIDS[grid_name](device)

    isosurface = extract_isosurface(grid, isovalue, backend)

    workspace.mkdir(parents=True, exist_ok=True)
    path = workspace / f"{grid_name}.obj"
    Trimesh(
        isosurface.vertices[:, :3].detach().cpu().numpy(),
        isosurface.faces.cpu().numpy(),
        vertex_normals=isosurface.normals.detach().cpu().numpy(),
        process=False,
    ).export(path)
    print(f"Saved {isosurface.num_triangles} triangles to {path}.")


if __name__ == "__main__":
    typer.run(main)
