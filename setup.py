"""
Setup script for the JobPulse web client.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="jobpulse-frontend",
    version="1.0.0",
    packages=find_packages(include=["jobpulse", "jobpulse.*"]),
    package_data={"jobpulse": ["templates/*.html", "templates/*/*.html"]},
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "flask>=3.0",
        "requests>=2.31",
        "python-dotenv>=1.0",
        "tenacity>=8.2",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-mock>=3.12",
        ],
    },
)
