"""Setup pour Pilotage Energie."""

from setuptools import setup, find_packages

setup(
    name="pilotage_energie",
    version="1.0.0",
    description="Suivi, validation et consolidation des indicateurs de performance energetique",
    author="AJ",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*"]),
    entry_points={
        "console_scripts": [
            "pilotage-energie=pilotage_energie.main:main",
        ],
    },
    install_requires=[
        "pydantic>=2.0",
        "python-dateutil>=2.8.0",
    ],
    extras_require={
        "supabase": [
            "supabase>=2.0.0",
        ],
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "supabase>=2.0.0",
        ],
    },
)
