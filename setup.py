#!/usr/bin/env python
# -*- encoding: utf-8 -*-
import io
import re
from os.path import dirname, join

from setuptools import find_packages, setup


def read(*names, **kwargs):
    return io.open(
        join(dirname(__file__), *names), encoding=kwargs.get("encoding", "utf8")
    ).read()


def find_version(*file_paths):
    contents = read(*file_paths)
    match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]", contents, re.M)
    if match:
        return match.group(1)
    raise RuntimeError("Unable to find version string.")


setup(
    name="azlogin",
    python_requires=">=3.7",
    version=find_version("src", "azlogin", "__init__.py"),
    license="",
    description="CLI to log a CI job into Azure via the Azure CLI and Azure PowerShell",
    long_description="""`azlogin` logs a CI job runner into Azure by driving the
pre-installed Azure CLI and, optionally, Azure PowerShell. It supports service
principals with a secret, certificate, or federated token as well as system- and
user-assigned managed identities, and picks the command line flags that the
installed Azure CLI version understands. A companion cleanup command removes the
cached credentials when the job ends.""",
    long_description_content_type="text/markdown",
    author="FMR LLC",
    author_email="opensource@fidelity.com",
    packages=find_packages("src"),
    package_dir={"": "src"},
    include_package_data=True,
    zip_safe=False,
    classifiers=[
        # complete classifier list: http://pypi.python.org/pypi?%3Aaction=list_classifiers
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: Unix",
        "Operating System :: POSIX",
        "Operating System :: Microsoft :: Windows",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: Implementation :: CPython",
        "Topic :: Utilities",
    ],
    keywords=["azlogin", "azure", "cli", "ci"],
    install_requires=[
        "PyYAML>=3.10",
    ],
    tests_require=["pytest", "pytest-mock"],
    extras_require={"test": ["pytest", "pytest-mock"]},
    entry_points={
        "console_scripts": [
            "azlogin = azlogin.cli:main",
            "azlogin-cleanup = azlogin.cli:cleanup_main",
        ]
    },
)
