from setuptools import setup, find_packages

setup(
    name="charityhub",
    version="0.1.0",
    packages=find_packages(include=["charityhub", "charityhub.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "pydantic>=2.6",
        "pydantic-settings>=2.3",
        "redis>=5.0.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
        ],
    },
)
