from setuptools import setup, find_namespace_packages

setup(
    name="chainspread",
    version="0.1",
    packages=find_namespace_packages(include=["chainspread", "chainspread.*"]),
    install_requires=[
        "ccxt~=4.4.14",
        "pandas~=2.2.2",
        "PyYAML~=6.0.1",
        "requests~=2.32",
        "web3~=7.6",
    ],
    extras_require={
        "test": ["pytest~=8.3"],
    },
    test_suite="chainspread/tests",
)
