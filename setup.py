from setuptools import setup, find_packages

setup(
    name="hubsync",
    version="0.1.0",
    description="Workspace synchronization between a numeric engine and an engineering data repository",
    author="Duy Nguyen",

    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "pydantic>=2",
        "structlog",
        "typer",
        "rich",
        "tomli_w",
        "tomli; python_version<'3.11'",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "hubsync=hubsync_pkg.cli.main:app",
        ],
    },
)
