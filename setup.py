#!/usr/bin/env python3
"""Setup script for Azure Report Tools"""
from setuptools import setup, find_packages

setup(
    name="azure-report-tools",
    version="1.0.0",
    description="Command-line cost, inventory and network reporting utilities for Azure",
    author="Azure Cost Optimization Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "azure-core>=1.26.0",
        "azure-identity>=1.12.0",
        "azure-mgmt-compute>=29.0.0",
        "azure-mgmt-network>=22.0.0",
        "azure-mgmt-storage>=20.0.0",
        "azure-mgmt-costmanagement>=4.0.0,<5",
        "azure-mgmt-subscription>=3.1.1",
        "pyyaml>=6.0",
        "requests>=2.28.0",
        "rich>=12.0.0",
        "tenacity>=8.0.0",
        "typer>=0.7.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "azure-report-tools=azure_report_tools.cli.main:main",
        ],
    },
    python_requires=">=3.8",
)
