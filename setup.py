#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="admmnet",
    version="0.1.0",
    description="admmnet: Distributed least-squares over networks via ADMM",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=["admmnet"],
    install_requires=[
        'numpy>=1.19',
        'scipy>=1.5',
    ],
    extras_require={
        'test': ['pytest'],
        'examples': ['matplotlib', 'networkx'],
        'docs': ['sphinx', 'sphinx_rtd_theme'],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.7',
)
