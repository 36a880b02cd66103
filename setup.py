#!/usr/bin/env python3
"""
Setup script for the tildechat client connector
"""

from setuptools import setup, find_packages

setup(
    name="tildechat",
    version="0.1.0",
    description="Client connector for the tildechat fixed-frame chat protocol",
    packages=find_packages(include=["client", "client.*", "shared", "shared.*"]),
    install_requires=[
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
    python_requires=">=3.10",
    entry_points={
        'console_scripts': [
            'tildechat=client.chat_cli:main',
        ],
    },
)
