from setuptools import setup, find_packages

setup(
    name="transcript-gateway",
    version="0.1.0",
    packages=find_packages(include=["transcript_gateway", "transcript_gateway.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "pydantic>=2.5",
        "pydantic-settings>=2.7",
        "httpx>=0.26",
        "requests>=2.31",
        "youtube-transcript-api>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "respx>=0.21",
        ],
    },
)
