from setuptools import setup, find_packages

setup(
    name="cmdguard",
    version="0.1.0",
    description="Safety policy engine for shell commands and file edits proposed by autonomous agents",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "typer>=0.9.0",
        "rich>=13.0.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "cmdguard=cmdguard.main:cmdguard",
        ],
    },
    python_requires=">=3.10",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
)
