
from setuptools import setup, find_packages


setup(
    name="sorokit",
    version="0.0.2",
    description="Soroban contract ids, authorization trees and resource footprints",
    long_description=open('README.md').read(),
    long_description_content_type="text/markdown",
    license="MIT",
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Programming Language :: Python :: 3.13',
    ],
    packages=find_packages(where=".", include=["sorokit", "sorokit.*"]),
    python_requires=">=3.10, <4",
    install_requires=["cryptography"],
    extras_require={
        "test": ["pytest", "pytest-asyncio"],
    },
)
