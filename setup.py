"""
Setup script for package installation
"""
from setuptools import setup, find_packages

setup(
    name="classmate_hub",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10,<3.14",
    install_requires=[
        "fastapi",
        "uvicorn",
        "starlette",
        "pydantic[email]",
        "python-multipart",
        "sqlalchemy>=2.0",
        "psycopg2-binary",
        "alembic",
        "python-jose[cryptography]",
        "passlib[bcrypt]",
        "bcrypt",
        "fastapi-sso",
        "python-dotenv",
        "boto3",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
)
