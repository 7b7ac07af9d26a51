from setuptools import setup, find_packages

setup(
    name="PhenoSim",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
    ],
    extras_require={
        "progress": ["tqdm"],
        "test": ["pytest"],
    },
    python_requires=">=3.8",
    description="Multi-trait phenotype simulation with a variance budget",
)
