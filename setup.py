from setuptools import setup, find_packages

setup(
    name="oaiclient",
    version="1.0.0",
    description="Client library for the OpenAI REST API with context management and streaming",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "requests",
        "rich",
        "python-dotenv",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    python_requires=">=3.8",
)
