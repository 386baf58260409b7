#!/usr/bin/env python3
"""
chunkcache Setup Script
=======================
Allows installation of the chunkcache package.

Usage:
    pip install -e .           # Development install
    pip install -e .[test]     # With test dependencies
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="chunkcache",
    version="1.0.0",
    packages=find_packages(include=["chunkcache", "chunkcache.*"]),
    python_requires=">=3.10",
    extras_require={
        "test": ["pytest"],
    },
)
