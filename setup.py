"""
sona: setuptools build script.

Usage:
    # Development (editable install):
    pip install -e ".[test]"

    # Then:
    sona transcribe ./audio.mp3
"""

from setuptools import setup, find_namespace_packages

APP_NAME = "sona"

setup(
    name=APP_NAME,
    version="1.0.0",
    description="Convert audio files and YouTube videos to text using AssemblyAI",
    packages=find_namespace_packages(include=["sona", "sona.*"]),
    install_requires=[
        "requests>=2.28.0",
        "typer>=0.9.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "sona=sona.cli.main:main",
        ],
    },
)
