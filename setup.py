import re

from setuptools import setup

with open("README.rst") as readme:
    long_description = readme.read()

with open("ckbutils/__init__.py") as init:
    version = re.search(r'^__version__ = "([^"]+)"', init.read(), re.M).group(1)

setup(
    name="ckb-signing-utils",
    version=version,
    description="Lock group signing messages and recoverable signatures for CKB transactions",
    long_description=long_description,
    author="The ckb-signing-utils developers",
    license="MIT",
    keywords="ckb nervos transaction signing secp256k1 witness",
    python_requires=">=3.9",
    install_requires=[
        "ecdsa>=0.16.0",
        "sympy>=1.2,<2.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    packages=["ckbutils"],
    zip_safe=False,
)
