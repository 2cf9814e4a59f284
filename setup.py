import setuptools
from pathlib import Path
import re

# https://www.python.org/dev/peps/pep-0440
with open(Path(__file__).parent/'superlat/VERSION') as f:
    version = re.sub(r'(-([^-]*)).*$',r'.\2',re.sub(r'^v(\d+\.\d+(\.\d+)?)',r'\1',f.readline().strip()))

setuptools.setup(
    name='superlat',
    version=version,
    description='superlat library',
    long_description='Python library for canonical lattices and symmetrically distinct superlattices',
    packages=setuptools.find_packages(include=['superlat','superlat.*']),
    package_data={'superlat': ['VERSION']},
    python_requires = '>=3.9',
    install_requires = [
        'numpy>=1.21',
        'pyyaml>=5.4',
    ],
    extras_require = {
        'test': ['pytest>=6.0'],
    },
    classifiers = [
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering',
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
    ],
)
