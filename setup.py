"""
dtogen - Schema-driven data-access code generator
Install: pip install -e .
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="dtogen",
    version="1.0.0",
    author="Diegoproggramer",
    author_email="",
    description="Generate Go / Python data-access code from a live PostgreSQL schema",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["dtogen", "dtogen.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Code Generators",
        "Topic :: Database",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=[
        "sqlalchemy>=2.0.0",
        "pydantic>=2.0.0",
        "psycopg2-binary>=2.9",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=23.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "dtogen=dtogen.cli:main",
        ],
    },
    keywords="postgresql, generator, dto, data-access, code-generator, crud, go, python",
)
