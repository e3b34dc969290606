from setuptools import find_packages, setup

package_name = "gauss_compress"

setup(
    name=package_name,
    version="0.1.0",
    packages=find_packages(exclude=["test"]),
    data_files=[
        (
            "share/" + package_name + "/config",
            [
                "config/compression_default.yaml",
            ],
        ),
    ],
    install_requires=["setuptools", "numpy", "scipy", "pydantic>=2", "pyyaml"],
    extras_require={"test": ["pytest"]},
    zip_safe=True,
    maintainer="Will Haber",
    maintainer_email="whab13@mit.edu",
    description="Gaussian-summary point cloud compression (greedy nearest-neighbor merge)",
    license="Apache-2.0",
    entry_points={
        "console_scripts": [
            "gauss-compress = gauss_compress.cli:main",
        ],
    },
)
