from setuptools import setup, find_packages

setup(
    name="DriveJsonDB",
    version="1.0.0",
    description="Single-file JSON table database persisted to a blob store",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.8',
    install_requires=[
        "xxhash<4","lz4","orjson"
    ],
    extras_require={
        "test": ["pytest"],
    },
)
