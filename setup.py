from setuptools import find_namespace_packages, setup

setup(
    name="isosurface_extraction",
    version="0.0.1",
    description="PyTorch-compatible marching cubes isosurface extraction.",
    author="David Charatan",
    author_email="charatan@mit.edu",
    packages=find_namespace_packages(include=["isosurface_extraction*"]),
    include_package_data=True,
    install_requires=["einops", "jaxtyping", "torch"],
    extras_require={
        "test": ["beartype", "pytest", "trimesh", "typer"],
        "visualization": ["trimesh", "typer"],
    },
)
