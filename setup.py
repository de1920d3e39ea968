from setuptools import setup, find_packages

setup(
    name="stakepool-config",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pynacl>=1.5.0",
        "solders>=0.21.0",
        "tomli-w>=1.0.0",
    ],
    python_requires=">=3.11",
)
