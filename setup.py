from setuptools import setup, find_packages

setup(
    name="cashflow_engine",
    version="0.1.0",
    description="Cash flow analytics engine: NPV, yield, duration, curve bootstrap",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
    ],
    extras_require={
        "test": [
            "pytest",
            "hypothesis",
        ],
    },
    python_requires=">=3.8",
)
