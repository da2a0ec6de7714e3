# -*- coding: utf-8 -*-

"""setup.py"""

import os

from setuptools import setup, find_packages


def read_content(filepath):
    with open(filepath) as fobj:
        return fobj.read()


classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "License :: OSI Approved :: GNU Lesser General Public License v3 (LGPLv3)",
    "Programming Language :: Python",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: Implementation :: CPython",
]


def get_requirements(filename="requirements.txt"):
    """Read a requirements file, skipping blank lines and comments."""
    with open(filename) as f:
        reqs = f.read().splitlines()

    return [req for req in reqs if req.strip() and not req.startswith("#")]


long_description = read_content("README.rst") + read_content(
    os.path.join("docs/source", "CHANGELOG.rst")
)

extras_require = {
    "test": get_requirements("test-requirements.txt"),
}

setup(
    name="manifest-index",
    version="0.1.0",
    description="Build and publish multi-arch container manifest lists",
    long_description=long_description,
    long_description_content_type="text/x-rst",
    classifiers=classifiers,
    package_dir={"": "src"},
    packages=find_packages(where="src", exclude=["tests"]),
    data_files=[],
    install_requires=get_requirements(),
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "manifest-index-build = manifest_index.build_index:build_index_main",
        ],
    },
    include_package_data=True,
    extras_require=extras_require,
)
