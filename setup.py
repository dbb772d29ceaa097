"""
Setup script for cosmic_mc package.

Installation:
    pip install -e .
"""

from setuptools import setup, find_packages

setup(
    name="cosmic_mc",
    version="0.1.0",
    description="Cosmic-ray candidate propagation with importance splitting",
    packages=find_packages(include=["cosmic_mc", "cosmic_mc.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "numba>=0.58",
        "pyyaml>=6.0",
        "tqdm>=4.65",
        "matplotlib>=3.7",
    ],
    extras_require={
        "dev": ["pytest>=7.3", "black>=23.0", "mypy>=1.3", "ipython>=8.12"],
        "test": ["pytest>=7.3"],
        "all": ["pytest>=7.3"],
    },
)
