import os

from setuptools import find_packages, setup

setup(
    name="wrpc",
    version="0.1.0",
    packages=find_packages(include=["wrpc", "wrpc.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.10.6,<3.0.0",
        "pydantic-settings>=2.0.0,<3.0.0",
        "structlog>=24.1.0",
        "fastapi>=0.110.0",
        "httpx>=0.27.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
            "hypothesis>=6.0.0",
        ],
    },
    author="wrpc Contributors",
    description="Schema-driven JSON codecs, validation and RPC service stubs",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
)
