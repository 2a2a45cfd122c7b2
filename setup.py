"""
Modules Distributions.
"""

from setuptools import find_packages, setup

with open("test_requirements.txt") as f_r:
    tests_requirements = [line.strip() for line in f_r.readlines()]

setup(
    name="ufilefs",
    version="2024.6.0",
    description="fsspec filesystem and signed client for UCloud UFile",
    license="Apache-2.0 License",
    install_requires=["fsspec>=2021.7.0", "requests>=2.25.0"],
    extras_require={"tests": tests_requirements},
    keywords="ufile, ucloud, fsspec",
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    package_dir={"": "src"},
    packages=find_packages("src", exclude=["tests"]),
    entry_points={"fsspec.specs": ["ufile=ufilefs.UFileFileSystem"]},
)
