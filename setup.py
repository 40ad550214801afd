#!/usr/bin/env python3
"""
Setup script for the Rock Paper Scissors WebSocket client
"""

from setuptools import setup, find_packages

setup(
    name="rps-client",
    version="0.1.0",
    description="Client session for a two-player Rock Paper Scissors WebSocket game",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "websockets>=15.0",
        "click>=8.1.7",
        "typer>=0.12.3",
        "rich>=13.9.2",
        "aioconsole>=0.8.1",
        "PyYAML>=6.0.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.4.2",
            "pytest-asyncio>=1.2.0",
        ],
    },
    python_requires=">=3.9",
    entry_points={
        'console_scripts': [
            'rps-client=rps_client.cli:main',
        ],
    },
)
