"""
Setup script for the DevOps notification relay
"""
from setuptools import setup, find_namespace_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="devops-notifications",
    version="0.1.0",
    author="DevOps Platform Team",
    description="Relays build and deployment events to Email, SMS and Slack",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_namespace_packages(include=["src", "src.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.11",
    install_requires=[
        "boto3>=1.34.0",
        "botocore>=1.34.0",
        "requests>=2.31.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "moto>=5.0.0",
            "aws-cdk-lib>=2.110.0",
            "constructs>=10.3.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.7.0",
        ],
        "infrastructure": [
            "aws-cdk-lib>=2.110.0",
            "constructs>=10.3.0",
        ]
    }
)
