"""
Setup script for CEP Race.

Installs the `ceprace` package from src/ and the `ceprace` console command.

Usage:
    pip install -e .[test]
"""

from setuptools import setup, find_packages

# --- SETUP CONFIGURATION ---
setup(
    name="ceprace",
    version="1.0.0",
    description="Race a CEP lookup across BrasilAPI and ViaCEP and keep the fastest answer",
    long_description="CEP Race issues one postal-code query to several equivalent providers at once, "
                     "returns whichever answers first and bounds the wait with a hard deadline.",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.8",
    install_requires=[
        "aiohttp>=3.8",
        "python-dotenv>=0.19",
    ],
    extras_require={
        "test": ["pytest>=7", "pytest-asyncio>=0.21"],
    },
    entry_points={
        "console_scripts": ["ceprace=ceprace.main:cli"],
    },
    zip_safe=False,
)
