from setuptools import setup, find_packages


setup(
    name="drivesim-dashboard",
    version="0.1.0",
    description="Car dashboard simulator: state-transition engine, file-backed state service and sync client",
    packages=find_packages(include=["services*", "libs*"]),
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.110.0",
        "requests>=2.31.0",
        "uvicorn>=0.24.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "httpx>=0.24",
        ],
    },
)
