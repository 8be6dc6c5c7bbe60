from setuptools import setup, find_packages


setup(
    name="lzpack",
    version="0.1",
    packages=find_packages(include=["lzpack", "lzpack.*"]),
    description="Self-describing LZMA stream containers and POSIX permission bridging for ZIP entries.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[],
    entry_points={
        "console_scripts": [
            "lzpack=lzpack.cli:main",
        ]
    },
)
