"""
Setup script for bintensor

Pure-Python package laid out under src/. Handles:
1. Reading the version from src/bintensor/__init__.py
2. Declaring runtime (numpy, scipy, h5py) and test (pytest) dependencies
"""

from pathlib import Path
from setuptools import setup, find_packages


# Read version from src/bintensor/__init__.py
def get_version():
    version_file = Path("src/bintensor/__init__.py")
    if version_file.exists():
        for line in version_file.read_text().splitlines():
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"').strip("'")
    return "0.1.0"


# Read long description from README
def get_long_description():
    readme = Path("README.md")
    if readme.exists():
        return readme.read_text(encoding="utf-8")
    return ""


setup(
    name="bintensor",
    version=get_version(),
    description="Axis-format sparse tensor descriptors, layout conversion and storage",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src", include=["bintensor", "bintensor.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20",
        "scipy>=1.7",
        "h5py>=3.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    zip_safe=True,
)
