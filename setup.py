from setuptools import setup, find_packages

setup(
    name="evidence-trust",
    version="0.1.0",
    description="Scores evidence quality and claim confidence, and validates citation grounding",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={"evidence_trust.config": ["engine_defaults.yaml"]},
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0",
        "pyyaml>=6.0",
        "python-dotenv>=1.0",
        "structlog>=23.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "evidence-trust=evidence_trust.cli:main",
        ],
    },
)
