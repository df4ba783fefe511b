"""Setup script for AssetQuote."""

from setuptools import setup, find_packages

# Read long description from README
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Read requirements
with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="assetquote",
    version="0.1.0",
    author="AssetQuote Team",
    author_email="team@assetquote.io",
    description="Symbol resolution and multi-provider asset pricing",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/assetquote/assetquote",
    packages=find_packages(where=".", include=["assetquote", "assetquote.*"]),
    package_dir={"": "."},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Financial and Insurance Industry",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Financial :: Investment",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.4",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.25.0",
            "black>=23.12.1",
            "mypy>=1.8.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "assetquote=assetquote.cli:main",
        ],
    },
)
