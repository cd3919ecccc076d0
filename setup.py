#!/usr/bin/env python3
"""
ALARM Causal Analysis Engine
Setup script for distribution packages.
"""

from setuptools import setup, find_packages
import os
import re

# Read the README file
def read_readme():
    with open("README.md", "r", encoding="utf-8") as fh:
        return fh.read()

# Read requirements
def read_requirements():
    with open("requirements.txt", "r", encoding="utf-8") as fh:
        return [line.strip() for line in fh if line.strip() and not line.startswith("#")]

# Get version from __init__.py
def get_version():
    init_file = os.path.join("engine", "__init__.py")
    with open(init_file, "r", encoding="utf-8") as fh:
        content = fh.read()
        version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]", content, re.M)
        if version_match:
            return version_match.group(1)
    raise RuntimeError("Unable to find version string.")

# Package configuration
setup(
    name="alarm-causal",
    version=get_version(),
    author="ALARM Development Team",
    description="Causal analysis of operational measurement histories",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Information Analysis",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=read_requirements(),
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },
    include_package_data=True,
    package_data={
        "": ["*.yaml", "*.yml"],
    },
    exclude_package_data={
        "": ["*.pyc", "*.pyo", "__pycache__", ".pytest_cache", ".coverage"],
    },
    zip_safe=False,
    keywords=[
        "causal-inference",
        "causal-discovery",
        "structural-equations",
        "time-series",
        "numba",
    ],
    platforms=["any"],
)
