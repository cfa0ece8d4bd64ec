import pytest
import trimesh
import typer
from jaxtyping import install_import_hook

with install_import_hook(
    ("isosurface_extraction", "visualization"),
    "beartype.beartype",
):
    from visualization.isosurface.__main__ import main


@pytest.mark.parametrize("backend", ("torch", "sequential"))
def test_export(tmp_path, backend):
    main(grid_name="random_field", backend=backend, workspace=tmp_path)
    mesh = trimesh.load(tmp_path / "random_field.obj", process=False)
    assert len(mesh.faces) > 0


@pytest.mark.parametrize(
    ("grid_name", "backend"),
    (("sphere", "cuda"), ("sphere", ""), ("cube", "torch")),
)
def test_unknown_names(tmp_path, grid_name, backend):
    with pytest.raises(typer.BadParameter):
        main(grid_name=grid_name, backend=backend, workspace=tmp_path)
    assert not any(tmp_path.iterdir())
