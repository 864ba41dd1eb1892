from setuptools import setup, find_packages

setup(
    name="formapro-backend",
    version="0.1.0",
    packages=find_packages(exclude=["formapro.tests", "formapro.tests.*"]),
    install_requires=[
        "fastapi>=0.100.0",
        "uvicorn>=0.15.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "sqlalchemy[asyncio]>=2.0.0",
        "aiosqlite>=0.19.0",
        "python-dotenv>=0.19.0",
        "PyJWT>=2.4.0",
        "redis>=5.0.1",
        "openai>=1.0.0",
        "httpx>=0.24.0",
        "pypdf>=3.0.0",
        "python-docx>=0.8.11",
        "python-pptx>=0.6.21",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.24.0",
            "httpx>=0.24.0",
        ],
    },
    python_requires=">=3.9",
)
