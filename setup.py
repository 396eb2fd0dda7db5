# coding: utf-8


import os
from setuptools import setup, find_packages  # type: ignore


this_dir = os.path.dirname(os.path.abspath(__file__))

# read the readme file
with open(os.path.join(this_dir, "README.md"), "r") as f:
    long_description = f.read()

# load package infos
pkg = {}  # type: ignore
with open(os.path.join(this_dir, "jetcalib", "__version__.py"), "r") as f:
    exec(f.read(), pkg)

install_requires = [
    "law",
    "numpy",
    "awkward>=2",
    "correctionlib>=2",
]

extras_require = {
    "test": [
        "pytest",
    ],
    "dev": [
        "pytest",
        "flake8",
    ],
}

setup(
    name="jetcalib",
    version=pkg["__version__"],
    description=pkg["__doc__"].strip().split("\n\n")[1].strip(),
    license=pkg["__license__"],
    long_description=long_description,
    long_description_content_type="text/markdown",
    python_requires=">=3.9",
    install_requires=install_requires,
    extras_require=extras_require,
    zip_safe=False,
    packages=find_packages(exclude=["tests"]),
)
