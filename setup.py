#!/usr/bin/env python3
"""Setup script for offscreen package."""
from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="offscreen",
    version="0.1.0",
    author="",
    author_email="",
    description="Turn a Sony Bravia TV off and on with the X11 screen saver",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: X11 Applications",
        "Intended Audience :: End Users/Desktop",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Home Automation",
        "Topic :: Desktop Environment :: Screen Savers",
    ],
    keywords="sony bravia tv x11 screensaver randr edid home-automation",
    install_requires=[
        "python-xlib>=0.33",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "offscreen=offscreen.cli:main",
        ],
    },
    python_requires=">=3.8",
)
