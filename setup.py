"""
Setup script for contract-graph
"""

from setuptools import setup, find_packages

setup(
    name="contract-graph",
    version="0.1.0",
    description="Call graph extraction and Mermaid diagrams for smart-contract languages",
    author="contract-graph Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "tree-sitter>=0.23.0",
        "tree-sitter-rust>=0.23.0",
        "python-dotenv>=1.0.1",
        "rich>=13.9.4",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "contract-graph=contract_graph.cli:main",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Documentation",
        "Topic :: Software Development :: Code Generators",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
