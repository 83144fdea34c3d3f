from setuptools import find_packages, setup

package_name = "tsdf_submaps"

setup(
    name=package_name,
    version="0.1.0",
    packages=find_packages(exclude=["test", "test.*"]),
    data_files=[
        (
            "share/" + package_name + "/config",
            [
                "config/tsdf_map_base.yaml",
            ],
        ),
    ],
    install_requires=[
        "setuptools",
        "numpy",
        "scipy",
        "jax",
        "pydantic>=2",
        "PyYAML",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.10",
    zip_safe=True,
    maintainer="you",
    maintainer_email="you@example.com",
    description="Posed TSDF submap collections: identity, pose correction, fusion and projection",
    license="Apache-2.0",
    entry_points={
        "console_scripts": [
            "tsdf-submaps-info = tsdf_submaps.tools.collection_info:main",
        ],
    },
)
