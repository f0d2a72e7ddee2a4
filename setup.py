#!/usr/bin/env python

import codecs
import os
import re
from setuptools import setup, find_packages

here = os.path.abspath(os.path.dirname(__file__))


def read(*parts):
    fname = os.path.join(os.path.join(here, *parts))
    with codecs.open(fname, 'r', encoding='utf-8') as fp:
        return fp.read()


def find_version(*file_paths):
    version_file = read(*file_paths)
    version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]",
                              version_file, re.M)
    if version_match:
        return version_match.group(1)
    raise RuntimeError("Unable to find version string.")


test_deps = ['pytest']
install_deps = [
    'click',
]


setup(
    name='llrp-session',
    version=find_version('llrp_session', 'version.py'),
    description='Minimal LLRP RFID reader session client',
    long_description=read('README.rst'),
    license='GPLv3',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: GNU General Public License v3 (GPLv3)',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
    ],
    keywords='llrp rfid reader',
    packages=find_packages(exclude=['tests']),
    python_requires='>=3.6',
    install_requires=install_deps,
    tests_require=test_deps,
    extras_require={'test': test_deps},
    entry_points={
        'console_scripts': [
            'llrp-session=llrp_session.cli:cli',
        ],
    },
)
