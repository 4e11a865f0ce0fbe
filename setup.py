from setuptools import setup, find_packages

setup(
    name="tierrank-py",
    version="0.1.0",
    packages=find_packages(exclude=["tests"]),
    install_requires=[
        "click",
        "numpy",
        "pandas",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'tierrank=tierrank_py.cli:main',
        ],
    },
    description="Tier lists from head-to-head comparisons with Wilson confidence bounds",
    long_description=open('README.md').read(),
    long_description_content_type="text/markdown",
    python_requires=">=3.8",
)
