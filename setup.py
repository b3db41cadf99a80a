"""Setup script for PawMatch."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

base_requirements = [
    "python-dotenv>=1.0.0",
    "pydantic>=2.5.0",
    "pydantic-settings>=2.1.0",
    "fastapi>=0.104.0",
    "uvicorn[standard]>=0.24.0",
    "httpx>=0.25.0",
    "loguru>=0.7.2",
    "sqlalchemy>=2.0.23",
]

# PostgreSQL driver for production deployments
postgres_requirements = [
    "psycopg2-binary>=2.9.9",
]

setup(
    name="pawmatch",
    version="1.0.0",
    author="Lee Whieldon",
    author_email="lwhieldon1@gmail.com",
    description="Animal listings and breeding match proposals with consistent pairing state",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.11",
    install_requires=base_requirements,
    extras_require={
        "postgres": postgres_requirements,
        "full": base_requirements + postgres_requirements,
        "dev": [
            "pytest>=7.4.3",
            "pytest-cov>=4.1.0",
            "pytest-mock>=3.12.0",
            "black>=23.12.0",
            "flake8>=6.1.0",
            "mypy>=1.7.1",
        ]
    },
    entry_points={
        "console_scripts": [
            "pawmatch=pawmatch.api:main",
        ],
    },
)
