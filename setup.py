"""Packaging for StatQuest.

Install for development:
    pip install -e ".[test]"
"""

from setuptools import setup, find_packages

setup(
    name="StatQuest",
    version="0.1.0",
    description="Progression and reward engine for a gamified quest timer",
    packages=find_packages(include=["statquest", "statquest.*"]),
    python_requires=">=3.10",
    install_requires=[
        "PyQt6",
        "SQLAlchemy>=2.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["statquest=statquest.__main__:main"],
    },
)
