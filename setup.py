"""Setup script for the qsolog package."""

from setuptools import find_packages, setup

setup(
    name="qsolog",
    version="0.1.0",
    description="Ham radio QSO logger with ADIF/CSV export and import",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.11",
    install_requires=[
        "sqlmodel>=0.0.14",
        "SQLAlchemy>=2.0",
        "platformdirs",
        "typer>=0.9",
        "rich",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "qsolog=qsolog.cli:main",
        ],
    },
    zip_safe=False,
)
