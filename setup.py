#!/usr/bin/python3

from setuptools import setup
from version import version


setup(
    name = 'jpi-edm',
    version = version,
    description = 'Decoder for JPI engine data monitor log files',
    packages = ['jpi'],
    python_requires = '>=3.9',
    install_requires = ['numpy', 'dacite'],
    extras_require = {'test': ['pytest']},
    include_package_data=False,
)
