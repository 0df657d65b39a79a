#!/usr/bin/env python3
"""
Setup configuration for Snatcher
Stream a personal MP3 library from S3-compatible object storage
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "click>=8.1.7",
    "pyyaml>=6.0.1",
    "python-dotenv>=1.0.0",
    "colorama>=0.4.6",
    "tqdm>=4.66.1",
    "requests>=2.31.0",
    "urllib3>=2.0.0",
    "yt-dlp>=2023.12.30",
    "mutagen>=1.47.0",
    "boto3>=1.28.0",
    "botocore>=1.31.0",
    "miniaudio>=1.59",
    "textual>=0.47.0",
]

setup(
    name="snatcher",
    version="1.0.0",
    author="Snatcher Contributors",
    description="Stream a personal MP3 library from S3-compatible storage",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Environment :: Console :: Curses",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio :: Players :: MP3",
    ],
    python_requires=">=3.8",
    install_requires=core_requirements,
    extras_require={
        "test": [
            "pytest>=7.4.3",
        ],
        "dev": [
            "pytest>=7.4.3",
            "black>=23.11.0",
            "flake8>=6.1.0",
            "mypy>=1.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "snatcher=snatcher.main:cli",
        ],
    },
    keywords="music streaming mp3 s3 player cli tui",
)
