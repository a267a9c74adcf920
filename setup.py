#!/usr/bin/env python3

from setuptools import setup, find_packages

setup(
    name="asa-host",
    version="1.0.0",
    description="ARK: Survival Ascended Docker Host Management Tool",
    author="JustAmply",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "croniter",
        "docker",
        "requests",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'asa-host=asa_host.cli:main',
            'asa-watchdog=asa_host.cli_commands.watchdog_command:main',
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Systems Administration",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
