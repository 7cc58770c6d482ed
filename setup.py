"""
hybridkg Setup Script

Install with: pip install -e .
Tests:        pip install -e ".[test]"
"""

from setuptools import setup, find_packages

setup(
    name='hybridkg',
    version='0.1.0',
    description='Hybrid search over a knowledge graph: BM25 + vectors + RRF + graph expansion',
    packages=find_packages(include=['hybridkg', 'hybridkg.*']),
    package_data={
        'hybridkg': ['config/*.yaml'],
    },
    include_package_data=True,
    install_requires=[
        'structlog>=23.1.0',
        'pyyaml>=6.0.1',
        'numpy>=1.26.0',
        'aiohttp>=3.9.0',
        'click>=8.1.0',
        'falkordb>=1.0.0',
        'qdrant-client>=1.10.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.4.0',
            'pytest-asyncio>=0.23.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'hybridkg=hybridkg.cli:cli',
        ],
    },
    python_requires='>=3.11',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Scientific/Engineering :: Artificial Intelligence',
        'Topic :: Text Processing :: Indexing',
    ],
)
