from setuptools import setup, find_namespace_packages

setup(
    name="forsee_ai",
    version="0.1.0",
    packages=find_namespace_packages(include=["forsee_ai", "forsee_ai.*"]),
    package_data={"forsee_ai.services": ["*.yaml"]},
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "python-jose[cryptography]",
        "python-dotenv",
        "httpx",
        "openai",
        "anthropic",
        "mistralai>=1.0,<2",
        "pyyaml"
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
)
