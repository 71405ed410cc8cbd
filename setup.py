from setuptools import setup

from exitshuffler.version import __version__

setup(
    name="exitshuffler",
    version=__version__,
    description=("Area exit randomiser which keeps every area reachable"),
    license="GPL-3.0",
    python_requires=">=3.10",
    install_requires=[
        "typing_extensions",
        "mrcrowbar >= 1.0.0rc1",
    ],
    extras_require={
        "maps": ["graphviz"],
        "test": ["pytest"],
    },
    packages=["exitshuffler"],
    package_data={"exitshuffler": ["data/*.json"]},
    entry_points={
        "console_scripts": [
            "exitshuffler = exitshuffler.cli:main",
        ],
    },
)
