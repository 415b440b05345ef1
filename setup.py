#!/usr/bin/env python3
"""
Setup script for Constrained Motion Planning Packages
"""

from setuptools import setup, find_packages

setup(
    name="manifold_planning",
    version="1.0.0",
    description="Atlas-based sampling motion planning on implicit constraint manifolds",
    author="Thorn",
    packages=find_packages(include=["manifold_constraints*", "manifold_planning*"]),
    package_data={"manifold_planning": ["config/*.yaml"]},
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
        "scipy>=1.5.0",
        "PyYAML>=5.3",
        "matplotlib>=3.3",
    ],
    extras_require={
        "test": ["pytest>=6.0"],
    },
    entry_points={
        "console_scripts": [
            "constrained-planning=manifold_planning.src.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
