#!/usr/bin/env python3
"""
Setup configuration for GCP Billing Watcher
"""

from setuptools import setup, find_packages
import os

# Read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

# Read requirements
with open(os.path.join(this_directory, 'requirements.txt')) as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith('#')]

setup(
    name="gcp-billing-watcher",
    version="1.0.0",
    author="Billing Watcher Team",
    author_email="admin@example.com",
    description="Google Cloud billing export watcher with budget alerts",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/example/gcp-billing-watcher",
    packages=find_packages(include=['src', 'src.*']),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "Intended Audience :: Developers",
        "Topic :: System :: Monitoring",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    entry_points={
        'console_scripts': [
            'billing-watcher=src.main:cli',
        ],
    },
    include_package_data=True,
    data_files=[('config', ['config/config.yaml'])],
    extras_require={
        'dev': [
            'pytest>=7.4.0',
            'pytest-asyncio>=0.21.0',
            'black>=23.9.0',
            'isort>=5.12.0',
            'mypy>=1.6.0',
        ],
    },
    keywords="gcp google cloud billing bigquery budget monitoring",
    project_urls={
        "Bug Reports": "https://github.com/example/gcp-billing-watcher/issues",
        "Source": "https://github.com/example/gcp-billing-watcher",
    },
)
