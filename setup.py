#!/usr/bin/env python
from setuptools import setup, find_packages

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name='django-dirlink',
    version='1.0.0',
    description='Lazily bound sessions, paged searches and typed attributes over python-ldap',
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords=['django', 'ldap', 'active directory'],
    packages=find_packages(exclude=['bin', '*.tests', '*.tests.*']),
    include_package_data=True,
    python_requires='>=3.10',
    install_requires=[
        'Django',
        'ldap_filter',
        'pyasn1',
        'python-ldap',
        'pytz',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3"
    ],
)
